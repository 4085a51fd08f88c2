"""User administration endpoints and deletion policies."""
from farmer_registry.models import Farmer, ROLE_ADMIN, User, db
from farmer_registry.services.users import create_user
from tests.conftest import ADMIN_PASSWORD, STAFF_PASSWORD, create_farmer


class TestCreateAndList:
    def test_create_staff(self, admin_client):
        response = admin_client.post('/api/users', json={
            'email': 'New.Staff@Example.com', 'password': 'secret123', 'name': 'New Staff',
        })

        assert response.status_code == 201
        user = response.get_json()['user']
        assert user['email'] == 'new.staff@example.com'
        assert user['role'] == 'STAFF'
        assert user['isActive'] is True
        assert 'passwordHash' not in user

    def test_duplicate_email(self, admin_client):
        response = admin_client.post('/api/users', json={
            'email': 'staff@example.com', 'password': 'secret123', 'name': 'Again',
        })
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Email already exists'

    def test_missing_fields(self, admin_client):
        response = admin_client.post('/api/users', json={'email': 'x@example.com'})
        assert response.status_code == 400

    def test_list_returns_staff_oldest_first(self, app, admin_client):
        with app.app_context():
            create_user('second@example.com', 'secret123', 'Second')

        users = admin_client.get('/api/users').get_json()['users']
        assert [u['email'] for u in users] == ['staff@example.com', 'second@example.com']
        assert all(u['role'] == 'STAFF' for u in users)


class TestToggleStatus:
    def test_deactivate_and_reactivate(self, app, admin_client, users):
        response = admin_client.post(f"/api/users/{users['staff']}/toggle-status")
        assert response.status_code == 200
        assert response.get_json()['user']['isActive'] is False
        assert 'deactivated' in response.get_json()['message']

        blocked = app.test_client().post('/api/auth/login',
                                         json={'email': 'staff@example.com', 'password': STAFF_PASSWORD})
        assert blocked.status_code == 403

        response = admin_client.post(f"/api/users/{users['staff']}/toggle-status")
        assert response.get_json()['user']['isActive'] is True

    def test_last_admin_cannot_be_deactivated(self, admin_client, users):
        response = admin_client.post(f"/api/users/{users['admin']}/toggle-status")
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Cannot deactivate the last admin user'

    def test_one_of_two_admins_can_be_deactivated(self, app, admin_client):
        with app.app_context():
            other = create_user('other-admin@example.com', ADMIN_PASSWORD, 'Other', role=ROLE_ADMIN)
            other_id = other.id

        response = admin_client.post(f'/api/users/{other_id}/toggle-status')
        assert response.status_code == 200
        assert response.get_json()['user']['isActive'] is False

    def test_unknown_user(self, admin_client):
        assert admin_client.post('/api/users/9999/toggle-status').status_code == 404


class TestDelete:
    def test_delete_staff(self, app, admin_client, users):
        response = admin_client.delete(f"/api/users/{users['staff']}")
        assert response.status_code == 200
        with app.app_context():
            assert db.session.get(User, users['staff']) is None

    def test_cannot_delete_self(self, admin_client, users):
        response = admin_client.delete(f"/api/users/{users['admin']}")
        assert response.status_code == 400

    def test_block_policy_refuses_when_user_owns_farmers(self, app, admin_client, staff_client, users):
        create_farmer(staff_client)

        response = admin_client.delete(f"/api/users/{users['staff']}")
        assert response.status_code == 400
        assert 'farmer record' in response.get_json()['detail']
        with app.app_context():
            assert db.session.get(User, users['staff']) is not None

    def test_nullify_policy_clears_references(self, app, admin_client, staff_client, users):
        farmer = create_farmer(staff_client)
        app.config['USER_DELETE_POLICY'] = 'nullify'

        assert admin_client.delete(f"/api/users/{users['staff']}").status_code == 200
        with app.app_context():
            record = db.session.get(Farmer, farmer['id'])
            assert record.created_by_id is None
            assert record.updated_by_id is None

    def test_reassign_policy_hands_records_to_system_user(self, app, admin_client, staff_client, users):
        farmer = create_farmer(staff_client)
        app.config['USER_DELETE_POLICY'] = 'reassign'
        app.config['SYSTEM_USER_EMAIL'] = 'admin@example.com'

        assert admin_client.delete(f"/api/users/{users['staff']}").status_code == 200
        with app.app_context():
            record = db.session.get(Farmer, farmer['id'])
            assert record.created_by_id == users['admin']

