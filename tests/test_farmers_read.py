"""Listing, fetching and document URLs."""
from tests.conftest import create_farmer


class TestList:
    def test_pagination(self, staff_client):
        for _ in range(3):
            create_farmer(staff_client)

        body = staff_client.get('/api/farmers?page=1&limit=2').get_json()
        assert len(body['farmers']) == 2
        assert body['pagination'] == {'total': 3, 'pages': 2, 'currentPage': 1, 'limit': 2}

        second = staff_client.get('/api/farmers?page=2&limit=2').get_json()
        assert len(second['farmers']) == 1

    def test_newest_first(self, staff_client):
        first = create_farmer(staff_client)
        second = create_farmer(staff_client)

        ids = [f['id'] for f in staff_client.get('/api/farmers').get_json()['farmers']]
        assert ids == [second['id'], first['id']]

    def test_search_is_case_insensitive_on_name(self, staff_client):
        create_farmer(staff_client, farmerName='Lakshmi Devi')
        create_farmer(staff_client, farmerName='Ravi Teja')

        body = staff_client.get('/api/farmers?search=lakSHMI').get_json()
        assert [f['name'] for f in body['farmers']] == ['Lakshmi Devi']
        assert body['pagination']['total'] == 1

    def test_search_matches_contact_and_survey_number(self, staff_client):
        target = create_farmer(staff_client, contactNumber='9000011111')
        create_farmer(staff_client)

        by_contact = staff_client.get('/api/farmers?search=0000111').get_json()['farmers']
        assert [f['id'] for f in by_contact] == [target['id']]

        by_number = staff_client.get(f"/api/farmers?search={target['surveyNumber'].lower()}").get_json()
        assert [f['id'] for f in by_number['farmers']] == [target['id']]

    def test_filters(self, staff_client):
        create_farmer(staff_client, state='Telangana', district='Medak')
        create_farmer(staff_client, state='Andhra Pradesh', district='Guntur')

        body = staff_client.get('/api/farmers?state=Telangana&district=Medak').get_json()
        assert [(f['state'], f['district']) for f in body['farmers']] == [('Telangana', 'Medak')]

    def test_wildcards_are_literal(self, staff_client):
        create_farmer(staff_client)
        assert staff_client.get('/api/farmers?search=%25').get_json()['farmers'] == []

    def test_summary_has_no_bank_details(self, staff_client):
        create_farmer(staff_client)
        summary = staff_client.get('/api/farmers').get_json()['farmers'][0]
        assert 'bankDetails' not in summary
        assert summary['createdBy'] == {'name': 'Staff User'}
        assert 'profilePicUrl' in summary['documents']

    def test_bad_page(self, staff_client):
        assert staff_client.get('/api/farmers?page=zero').status_code == 400
        assert staff_client.get('/api/farmers?limit=0').status_code == 400


class TestGet:
    def test_round_trip_with_signed_urls(self, staff_client):
        created = create_farmer(staff_client, field_count=2)

        response = staff_client.get(f"/api/farmers/{created['surveyNumber']}")
        assert response.status_code == 200
        farmer = response.get_json()['farmer']

        assert farmer['name'] == created['name']
        assert farmer['bankDetails'] == created['bankDetails']
        assert len(farmer['fields']) == 2
        docs = farmer['documents']
        assert docs['profilePicSignedUrl'] == (
            f"https://storage.test/profile-pic/{docs['profilePicUrl']}?expires=3600"
        )
        assert docs['aadharDocSignedUrl'].startswith('https://storage.test/aadhar-doc/')
        assert docs['bankDocSignedUrl'].startswith('https://storage.test/bank-doc/')
        for field in farmer['fields']:
            assert field['landDocumentSignedUrl'].startswith(
                f"https://storage.test/land-doc/{field['landDocumentUrl']}"
            )

    def test_by_numeric_id(self, staff_client):
        created = create_farmer(staff_client)
        farmer = staff_client.get(f"/api/farmers/{created['id']}").get_json()['farmer']
        assert farmer['surveyNumber'] == created['surveyNumber']

    def test_not_found(self, staff_client):
        response = staff_client.get('/api/farmers/NONE0000000')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Farmer not found'

    def test_signing_failure_is_500(self, bucket, staff_client):
        created = create_farmer(staff_client)
        bucket.fail_sign_prefix = 'bank-doc/'
        response = staff_client.get(f"/api/farmers/{created['id']}")
        assert response.status_code == 500
        assert response.get_json() == {'error': 'File storage operation failed'}
        assert 'bank-doc' not in response.get_data(as_text=True)


class TestDocumentUrl:
    def test_admin_gets_short_lived_url(self, admin_client):
        created = create_farmer(admin_client)

        response = admin_client.get(f"/api/documents/aadhar/{created['surveyNumber']}/url")
        assert response.status_code == 200
        assert response.get_json()['url'] == (
            f"https://storage.test/aadhar-doc/{created['documents']['aadharDocUrl']}?expires=1800"
        )

    def test_land_document_by_index(self, admin_client):
        created = create_farmer(admin_client, field_count=2)
        url = admin_client.get(f"/api/documents/land/{created['id']}/url?fieldIndex=1").get_json()['url']
        assert created['fields'][1]['landDocumentUrl'] in url

    def test_field_index_out_of_range(self, admin_client):
        created = create_farmer(admin_client)
        response = admin_client.get(f"/api/documents/land/{created['id']}/url?fieldIndex=3")
        assert response.status_code == 404

    def test_unknown_type(self, admin_client):
        created = create_farmer(admin_client)
        response = admin_client.get(f"/api/documents/passport/{created['id']}/url")
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid document type'

    def test_staff_is_refused(self, staff_client):
        created = create_farmer(staff_client)
        assert staff_client.get(f"/api/documents/aadhar/{created['id']}/url").status_code == 403
