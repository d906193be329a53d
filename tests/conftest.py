import datetime
from decimal import Decimal

import pytest
from app import create_app, db
from models import User, UserRole, Client, Event, EventStatus
from utils.cache import dashboard_cache

EVENT_DATE = datetime.date(2025, 3, 15)

@pytest.fixture
def app(tmp_path):
    """Create and configure a Flask app for testing"""
    # TestingConfig uses an in-memory SQLite database, fresh for every app
    app = create_app('config.TestingConfig')
    app.config.update({
        'TESTING': True,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
    })

    # Create the database and the database tables
    with app.app_context():
        db.create_all()
        _init_test_data(db)

    # Metrics cached by a previous test belong to another database
    dashboard_cache.invalidate()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """A test client for the app"""
    return app.test_client()

@pytest.fixture
def runner(app):
    """A test CLI runner for the app"""
    return app.test_cli_runner()

def _login(client, username, password):
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    token = response.get_json().get('access_token')
    return {'Authorization': f'Bearer {token}'}

@pytest.fixture
def auth_headers(client):
    """Get authentication headers with a valid admin JWT token"""
    return _login(client, 'testuser', 'testpassword')

@pytest.fixture
def operator_headers(client):
    """Authentication headers for a non-admin user"""
    return _login(client, 'operator', 'operatorpass')

@pytest.fixture
def client_id(app):
    with app.app_context():
        return Client.query.filter_by(email='maria@example.com').one().id

@pytest.fixture
def event_id(app):
    with app.app_context():
        return Event.query.filter_by(title='Ana 5th Birthday').one().id

def _init_test_data(db):
    """Initialize test data in the database"""
    # Create test users
    admin = User(username='testuser', email='test@example.com', role=UserRole.ADMIN.value)
    admin.set_password('testpassword')
    operator = User(username='operator', email='operator@example.com', role=UserRole.OPERATOR.value)
    operator.set_password('operatorpass')
    db.session.add_all([admin, operator])

    # Create test client
    test_client = Client(
        name='Maria Silva',
        email='maria@example.com',
        phone='11 99999-0000',
        address='Rua das Flores, 123',
        notes='Prefers Saturday parties'
    )
    db.session.add(test_client)

    # Commit to get IDs
    db.session.commit()

    # Create test event, 14:00-18:00
    test_event = Event(
        client_id=test_client.id,
        title='Ana 5th Birthday',
        date=EVENT_DATE,
        start_time='14:00',
        end_time='18:00',
        guests_count=40,
        package_type='Premium',
        total_value=Decimal('3500.00'),
        status=EventStatus.CONFIRMED,
    )
    db.session.add(test_event)

    # Commit all changes
    db.session.commit()
