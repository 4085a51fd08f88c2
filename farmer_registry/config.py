# Application Configuration
import os
from datetime import timedelta
from pathlib import Path

basedir = Path(__file__).parent.parent

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Handle both PostgreSQL (Render) and SQLite (local)
    database_url = os.environ.get('DATABASE_URL')
    if database_url:
        # Render provides postgres:// but SQLAlchemy needs postgresql://
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)
        SQLALCHEMY_DATABASE_URI = database_url
    else:
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{basedir / "instance" / "farmer_registry.db"}'

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie: signed, httpOnly, 7 days
    SESSION_LIFETIME_DAYS = int(os.environ.get('SESSION_LIFETIME_DAYS', 7))
    PERMANENT_SESSION_LIFETIME = timedelta(days=SESSION_LIFETIME_DAYS)
    SESSION_COOKIE_NAME = 'session'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Strict'
    SESSION_COOKIE_SECURE = os.environ.get('FLASK_ENV') == 'production'

    # Object storage (Supabase)
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_SERVICE_KEY = os.environ.get('SUPABASE_SERVICE_KEY')
    STORAGE_BUCKET = os.environ.get('STORAGE_BUCKET', 'farmer-data')
    STORAGE_MAX_WORKERS = int(os.environ.get('STORAGE_MAX_WORKERS', 8))

    # Upload settings
    MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5MB per document
    MAX_CONTENT_LENGTH = 64 * 1024 * 1024  # whole multipart request

    SURVEY_NUMBER_MAX_ATTEMPTS = int(os.environ.get('SURVEY_NUMBER_MAX_ATTEMPTS', 10))

    # What happens to farmers owned by a deleted user: block, nullify, reassign
    USER_DELETE_POLICY = os.environ.get('USER_DELETE_POLICY', 'block')
    SYSTEM_USER_EMAIL = os.environ.get('SYSTEM_USER_EMAIL')

    # Initial admin, created on startup when no admin exists
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD')
    ADMIN_NAME = os.environ.get('ADMIN_NAME', 'Administrator')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SUPABASE_URL = None
    SUPABASE_SERVICE_KEY = None
    ADMIN_EMAIL = None
    ADMIN_PASSWORD = None
    USER_DELETE_POLICY = 'block'
    STORAGE_MAX_WORKERS = 4
