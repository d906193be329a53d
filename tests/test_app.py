from app import create_app, db
from config import TestingConfig
from models import User

class RateLimitedConfig(TestingConfig):
    RATELIMIT_ENABLED = True
    RATELIMIT_DEFAULT = '3 per 15 minutes'

def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'ok'
    assert data['environment'] == 'testing'
    assert 'timestamp' in data

def test_security_and_correlation_headers(client):
    response = client.get('/health')

    assert response.headers['X-Content-Type-Options'] == 'nosniff'
    assert response.headers['X-Frame-Options'] == 'SAMEORIGIN'
    assert response.headers['X-Correlation-ID'].startswith('req-')

def test_unknown_route_returns_json_404(client):
    response = client.get('/api/does-not-exist')

    assert response.status_code == 404
    assert response.get_json()['error'] == 'Not found'
    # No "did you mean" suggestions appended by flask-restx
    assert response.get_json()['message'] == 'Route GET /api/does-not-exist does not exist'

def test_restx_404_help_is_disabled(app):
    assert app.config['RESTX_ERROR_404_HELP'] is False

def test_swagger_json_lists_routes(client):
    response = client.get('/swagger.json')

    assert response.status_code == 200
    paths = response.get_json()['paths']
    assert '/api/events/calendar/{year}/{month}' in paths
    assert '/api/payments/analytics/detailed' in paths

def test_init_db_seeds_admin_once(app, runner):
    with app.app_context():
        User.query.filter_by(username='testuser').delete()
        db.session.commit()

    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Created admin user "admin"' in result.output

    result = runner.invoke(args=['init-db'])
    assert 'Created admin user' not in result.output

    with app.app_context():
        admin = User.query.filter_by(username='admin').one()
        assert admin.is_admin
        assert admin.check_password('admin123')

def test_rate_limit_per_client_ip():
    limited_app = create_app(RateLimitedConfig)
    limited_client = limited_app.test_client()

    for _ in range(3):
        response = limited_client.get('/api/auth')
        assert response.status_code == 200
        assert response.headers['X-RateLimit-Limit'] == '3'

    response = limited_client.get('/api/auth')

    assert response.status_code == 429
    data = response.get_json()
    assert data['error'] == 'Too many requests'
    assert 'Try again later' in data['message']

    # The health check stays reachable for load balancers
    assert limited_client.get('/health').status_code == 200

    with limited_app.app_context():
        db.session.remove()
        db.drop_all()

def test_rate_limit_disabled_for_tests(client):
    for _ in range(5):
        assert client.get('/api/auth').status_code == 200
