import os

# Point the application at throwaway locations before any casaora module reads Config
os.environ['DATABASE_URL'] = 'sqlite:///test_casaora.db'
os.environ['LOG_FILE'] = 'logs/test_casaora.log'
os.environ['SECRET_KEY'] = 'test-secret-key'

import json
import pytest
from unittest.mock import Mock
from casaora.database import drop_db, init_db, DatabaseManager
from casaora.integrations import BackgroundCheckProviderFactory, BackgroundCheckSettings
from casaora.models import User
from casaora.models.user import UserRole
from casaora.utils.security import generate_token

PROVIDER_CONFIG = {
    'CHECKR_API_KEY': 'test_checkr_key',
    'CHECKR_WEBHOOK_SECRET': 'test_checkr_webhook_secret',
    'CHECKR_ENABLED': True,
    'TRUORA_API_KEY': 'test_truora_key',
    'TRUORA_WEBHOOK_SECRET': 'test_truora_webhook_secret',
    'TRUORA_ENABLED': True,
    'BACKGROUND_CHECK_PROVIDER': 'checkr',
}


@pytest.fixture
def db():
    """Fresh database for each test"""
    init_db()
    yield
    drop_db()


@pytest.fixture
def app(db):
    from casaora.main import create_app
    app = create_app('testing')
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    token = generate_token({'user_id': 'admin-user', 'role': 'admin'})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def customer_headers():
    token = generate_token({'user_id': 'customer-user', 'role': 'customer'})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def provider_config():
    return dict(PROVIDER_CONFIG)


@pytest.fixture
def factory(provider_config):
    return BackgroundCheckProviderFactory(BackgroundCheckSettings.from_config(provider_config))


@pytest.fixture
def make_user(db):
    """Create users with sensible defaults"""
    user_db = DatabaseManager(User)
    counter = {'n': 0}

    def _make_user(**fields):
        counter['n'] += 1
        defaults = {
            'email': f"user{counter['n']}@example.com",
            'first_name': 'Ana',
            'last_name': 'Gómez',
            'role': UserRole.CUSTOMER,
        }
        defaults.update(fields)
        return user_db.create(**defaults)

    return _make_user


@pytest.fixture
def make_professional(make_user):
    def _make_professional(**fields):
        defaults = {
            'role': UserRole.PROFESSIONAL,
            'phone': '+573001234567',
            'document_id': '1020304050',
            'document_type': 'CC',
            'date_of_birth': '1990-05-14',
            'address': 'Calle 80 # 10-20',
            'city': 'Bogotá',
            'country_code': 'CO',
        }
        defaults.update(fields)
        return make_user(**defaults)

    return _make_professional


def _api_response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = 'Error'
    response.content = json.dumps(payload).encode() if payload is not None else b''
    response.json.return_value = payload
    return response


@pytest.fixture
def api_response():
    """Build fake `requests` responses"""
    return _api_response
