"""
Pytest configuration and fixtures.
Each test gets its own freshly seeded database file.
"""

import os
import pytest
from datetime import datetime
from zoneinfo import ZoneInfo

os.environ['FLASK_ENV'] = 'test'

TZ = ZoneInfo('Europe/Minsk')

# Fixed clock for model-level tests: 08:00 on the booking day
NOW = datetime(2030, 6, 10, 8, 0, tzinfo=TZ)
TODAY = '2030-06-10'
LATER = '2030-06-12'


@pytest.fixture
def app(tmp_path):
    """Create test application with isolated database."""
    from app import create_app
    from database import init_db

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['DATABASE_PATH'] = str(tmp_path / 'drewno_test.db')

    with app.app_context():
        init_db()

    yield app


@pytest.fixture
def client(app):
    """Create anonymous test client."""
    return app.test_client()


def _login(app, username, password):
    client = app.test_client()
    response = client.post('/auth/login', json={'username': username, 'password': password})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def owner_client(app):
    """Test client logged in as the owner."""
    return _login(app, 'owner', 'owner123')


@pytest.fixture
def admin_client(app):
    """Test client logged in as an administrator."""
    return _login(app, 'admin', 'admin123')


@pytest.fixture
def instructor_client(app):
    """Test client logged in as the quad instructor."""
    return _login(app, 'instructor', 'instructor123')


@pytest.fixture
def booking_data():
    """Factory for create_booking payloads (SPA1, 3 hours, 4 guests)."""
    def build(**overrides):
        data = {
            'resource': 'SPA1',
            'subtype': 'bath_only',
            'date': LATER,
            'start_time': '14:00',
            'duration_hours': 3,
            'guest_count': 4,
            'add_ons': {},
            'customer_name': 'Иван Петров',
            'customer_phone': '+375 29 123-45-67',
        }
        data.update(overrides)
        return data
    return build


@pytest.fixture
def make_booking(app, booking_data):
    """Create a booking through the model layer and return it."""
    def create(now=NOW, source='guest', allow_confirmed=False, created_by=None, **overrides):
        from models.booking import create_booking

        with app.app_context():
            return create_booking(
                booking_data(**overrides),
                created_by=created_by,
                source=source,
                allow_confirmed=allow_confirmed,
                now=now
            )
    return create
