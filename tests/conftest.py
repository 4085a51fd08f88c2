"""Shared fixtures: an app on in-memory SQLite and a fake Supabase bucket."""
import io
import json
import threading

import pytest

from farmer_registry import create_app
from farmer_registry.config import TestingConfig
from farmer_registry.models import ROLE_ADMIN, ROLE_STAFF, db
from farmer_registry.services.users import create_user
from farmer_registry.utils.storage import DocumentStore

ADMIN_PASSWORD = 'admin-password'
STAFF_PASSWORD = 'staff-password'


class FakeBucket:
    """In-memory stand-in for ``client.storage.from_(bucket)``."""

    def __init__(self):
        self.objects = {}
        self.removed = []
        self.fail_upload_prefix = None
        self.fail_sign_prefix = None
        self.fail_remove = False
        self._lock = threading.Lock()

    def upload(self, path, file, file_options=None):
        if self.fail_upload_prefix and path.startswith(self.fail_upload_prefix):
            raise RuntimeError(f'upload rejected: {path}')
        with self._lock:
            if path in self.objects:
                raise RuntimeError(f'The resource already exists: {path}')
            self.objects[path] = (file, (file_options or {}).get('content-type'))
        return {'Key': path}

    def remove(self, paths):
        if self.fail_remove:
            raise RuntimeError('remove failed')
        with self._lock:
            for path in paths:
                self.objects.pop(path, None)
                self.removed.append(path)
        return [{'name': p} for p in paths]

    def create_signed_url(self, path, expires_in):
        if self.fail_sign_prefix and path.startswith(self.fail_sign_prefix):
            raise RuntimeError(f'sign rejected: {path}')
        if path not in self.objects:
            raise RuntimeError(f'Object not found: {path}')
        return {'signedURL': f'https://storage.test/{path}?expires={expires_in}'}


class FakeStorage:
    def __init__(self, bucket):
        self.bucket = bucket

    def from_(self, name):
        return self.bucket


class FakeSupabase:
    def __init__(self, bucket):
        self.storage = FakeStorage(bucket)


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def app(bucket):
    app = create_app(TestingConfig)
    app.extensions['document_store'] = DocumentStore(FakeSupabase(bucket), 'farmer-data', max_workers=4)

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def users(app):
    """Ids of one admin and one staff account."""
    with app.app_context():
        admin = create_user('admin@example.com', ADMIN_PASSWORD, 'Admin User', role=ROLE_ADMIN)
        staff = create_user('staff@example.com', STAFF_PASSWORD, 'Staff User', role=ROLE_STAFF)
        return {'admin': admin.id, 'staff': staff.id}


def login(client, email, password):
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def admin_client(app, users):
    return login(app.test_client(), 'admin@example.com', ADMIN_PASSWORD)


@pytest.fixture
def staff_client(app, users):
    return login(app.test_client(), 'staff@example.com', STAFF_PASSWORD)


def location(lat=17.385, lng=78.4867):
    return json.dumps({'lat': lat, 'lng': lng, 'accuracy': 10, 'timestamp': 1700000000000})


def upload(name='doc.pdf', content=b'%PDF-1.4 test document', mimetype='application/pdf'):
    return (io.BytesIO(content), name, mimetype)


def farmer_form(field_count=1, **overrides):
    """Multipart body for a valid create request."""
    fields = [
        {'areaHa': 2.5 + i, 'yieldEstimate': 1200 + i, 'location': location()}
        for i in range(field_count)
    ]
    data = {
        'farmerName': 'Ramesh Kumar',
        'relationship': 'SELF',
        'gender': 'Male',
        'community': 'General',
        'aadharNumber': '123456789012',
        'contactNumber': '9876543210',
        'state': 'Telangana',
        'district': 'Rangareddy',
        'mandal': 'Shamshabad',
        'village': 'Kothur',
        'panchayath': 'Kothur',
        'dateOfBirth': '1980-05-17',
        'age': '44',
        'ifscCode': 'SBIN0001234',
        'accountNumber': '12345678901',
        'branchName': 'Shamshabad',
        'bankAddress': 'Main Road, Shamshabad',
        'bankName': 'State Bank of India',
        'bankCode': 'SBI',
        'fields': json.dumps(fields),
        'profilePic': upload('photo.jpg', b'\xff\xd8\xff jpeg bytes', 'image/jpeg'),
        'aadharDoc': upload('aadhar.pdf'),
        'bankDoc': upload('passbook.png', b'\x89PNG png bytes', 'image/png'),
    }
    for i in range(field_count):
        data[f'fieldDoc_{i}'] = upload(f'land{i}.pdf')
    data.update(overrides)
    return {key: value for key, value in data.items() if value is not None}


def create_farmer(client, **overrides):
    response = client.post('/api/farmers', data=farmer_form(**overrides),
                           content_type='multipart/form-data')
    assert response.status_code == 201, response.get_json()
    return response.get_json()['farmer']
