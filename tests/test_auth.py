import json
from flask_jwt_extended import decode_token

def test_auth_index(client):
    """The auth index lists the endpoints without authentication"""
    response = client.get('/api/auth')
    assert response.status_code == 200
    assert 'POST /api/auth/login' in response.get_json()['endpoints']

def test_login_success(client):
    """Test successful login"""
    # Make a POST request to the login endpoint
    response = client.post('/api/auth/login', json={
        'username': 'testuser',
        'password': 'testpassword'
    })

    # Check status code
    assert response.status_code == 200

    # Check response data
    data = json.loads(response.data)
    assert data['message'] == 'Login successful'
    assert 'access_token' in data
    assert 'refresh_token' in data
    assert data['user']['username'] == 'testuser'
    assert data['user']['email'] == 'test@example.com'
    assert data['user']['role'] == 'admin'
    assert 'password_hash' not in data['user']
    assert 'password' not in data['user']

    # The access token is also set as the session cookie
    assert 'buffet.sid=' in response.headers.get('Set-Cookie', '')

def test_login_invalid_credentials(client):
    """Test login with invalid credentials"""
    # Make a POST request with wrong password
    response = client.post('/api/auth/login', json={
        'username': 'testuser',
        'password': 'wrongpassword'
    })

    # Check status code
    assert response.status_code == 401

    # Check error message
    data = json.loads(response.data)
    assert data['error'] == 'Invalid credentials'

    # Try with non-existent user
    response = client.post('/api/auth/login', json={
        'username': 'nonexistentuser',
        'password': 'testpassword'
    })

    # Check status code
    assert response.status_code == 401

def test_login_validation_error(client):
    """Short usernames and missing passwords are rejected before lookup"""
    response = client.post('/api/auth/login', json={'username': 'ab'})
    assert response.status_code == 400

    data = response.get_json()
    assert 'username' in data['details']
    assert 'password' in data['details']

def test_cookie_session(client):
    """After login the cookie alone authenticates requests"""
    client.post('/api/auth/login', json={
        'username': 'testuser',
        'password': 'testpassword'
    })

    response = client.get('/api/auth/me')
    assert response.status_code == 200
    assert response.get_json()['user']['username'] == 'testuser'

def test_me_requires_auth(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Unauthorized'

def test_refresh_token(client):
    """Test refreshing access token"""
    # First, login to get tokens
    response = client.post('/api/auth/login', json={
        'username': 'testuser',
        'password': 'testpassword'
    })

    data = json.loads(response.data)
    refresh_token = data['refresh_token']

    # Use refresh token to get new access token
    response = client.post('/api/auth/refresh', headers={
        'Authorization': f'Bearer {refresh_token}'
    })

    # Check status code
    assert response.status_code == 200

    # Check new access token is returned
    data = json.loads(response.data)
    assert data['access_token']

def test_logout(client, auth_headers):
    """Test logout functionality"""
    # Log out with valid token
    response = client.post('/api/auth/logout', headers=auth_headers)

    # Check status code
    assert response.status_code == 200

    # Check message
    data = json.loads(response.data)
    assert data['message'] == 'Logout successful'

    # Try to use the same token for a protected route
    response = client.get('/api/clients', headers=auth_headers)

    # Token should be blacklisted, so expect 401
    assert response.status_code == 401

def test_create_user(client, auth_headers):
    """Admins can create users, who can then log in"""
    response = client.post('/api/auth/create-user', json={
        'username': 'newuser',
        'email': 'new@example.com',
        'password': 'newpassword'
    }, headers=auth_headers)

    # Check status code
    assert response.status_code == 201

    # Check response data; role defaults to operator
    data = json.loads(response.data)
    assert data['user']['username'] == 'newuser'
    assert data['user']['role'] == 'operator'
    assert 'password_hash' not in data['user']

    # Try to login with the new user
    response = client.post('/api/auth/login', json={
        'username': 'newuser',
        'password': 'newpassword'
    })
    assert response.status_code == 200

def test_create_user_duplicate_username(client, auth_headers):
    """Test registration with duplicate username"""
    response = client.post('/api/auth/create-user', json={
        'username': 'testuser',  # Existing username
        'email': 'unique@example.com',
        'password': 'password123'
    }, headers=auth_headers)

    assert response.status_code == 409
    assert response.get_json()['message'] == 'Username already in use'

def test_create_user_unique_race_returns_conflict(client, auth_headers, monkeypatch):
    """The unique index still answers 409 when the lookup misses a concurrent insert"""
    monkeypatch.setattr('api.auth._user_conflict', lambda username, email: None)

    response = client.post('/api/auth/create-user', json={
        'username': 'testuser',
        'email': 'unique@example.com',
        'password': 'password123'
    }, headers=auth_headers)

    assert response.status_code == 409
    data = response.get_json()
    assert data['error'] == 'Conflict'
    assert data['message'] == 'Username or email already in use'

    response = client.get('/api/auth/users', headers=auth_headers)
    assert response.status_code == 200
    assert [u['username'] for u in response.get_json()['users']].count('testuser') == 1

def test_create_user_requires_admin(client, operator_headers):
    response = client.post('/api/auth/create-user', json={
        'username': 'sneaky',
        'email': 'sneaky@example.com',
        'password': 'password123'
    }, headers=operator_headers)

    assert response.status_code == 403
    assert response.get_json()['error'] == 'Forbidden'

def test_list_users(client, auth_headers, operator_headers):
    response = client.get('/api/auth/users', headers=auth_headers)
    assert response.status_code == 200
    data = response.get_json()
    assert data['total'] == 2
    assert {u['username'] for u in data['users']} == {'testuser', 'operator'}

    response = client.get('/api/auth/users', headers=operator_headers)
    assert response.status_code == 403

def test_token_claims(client):
    """Test JWT token contains correct claims"""
    # Login to get token
    response = client.post('/api/auth/login', json={
        'username': 'testuser',
        'password': 'testpassword'
    })

    data = json.loads(response.data)
    access_token = data['access_token']

    with client.application.app_context():
        decoded = decode_token(access_token)

        # Check identity and role claims
        assert decoded['sub'] == str(data['user']['id'])
        assert decoded['role'] == 'admin'
