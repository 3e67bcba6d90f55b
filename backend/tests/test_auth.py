"""Test authentication endpoints."""
import json

from intrack.models.user import UserRole


def test_health_check(client):
    """Test auth health endpoint."""
    response = client.get('/api/auth/health')
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['message'] == 'Auth service is running'


def test_register_student(client):
    """Test successful student registration."""
    response = client.post('/api/auth/register',
        json={
            'email': 'newuser@example.com',
            'password': 'password123',
            'name': 'New User',
            'rollNumber': 'ME-042'
        })

    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['error'] == False
    assert data['data']['email'] == 'newuser@example.com'
    assert data['data']['role'] == 'STUDENT'
    assert data['data']['roll_number'] == 'ME-042'
    assert 'password_hash' not in data['data']


def test_register_company(client):
    response = client.post('/api/auth/register',
        json={
            'email': 'hr@widgets.example.com',
            'password': 'password123',
            'name': 'Widgets HR',
            'role': 'COMPANY',
            'companyName': 'Widgets Ltd'
        })

    assert response.status_code == 201
    assert response.get_json()['data']['role'] == 'COMPANY'


def test_register_validation(client, student):
    """Test registration validation."""
    # Missing fields
    response = client.post('/api/auth/register', json={})
    assert response.status_code == 400

    # Invalid email
    response = client.post('/api/auth/register',
        json={
            'email': 'invalid-email',
            'password': 'password123',
            'name': 'Test User'
        })
    assert response.status_code == 400

    # Admins are created from the CLI only
    response = client.post('/api/auth/register',
        json={
            'email': 'boss@example.com',
            'password': 'password123',
            'name': 'Boss',
            'role': 'ADMIN'
        })
    assert response.status_code == 400

    # Duplicate email
    response = client.post('/api/auth/register',
        json={
            'email': student.email,
            'password': 'password123',
            'name': 'Copy Cat'
        })
    assert response.status_code == 409


def test_login_success(client, student):
    """Test successful login."""
    response = client.post('/api/auth/login',
        json={
            'email': 'student@example.com',
            'password': 'password123'
        })

    assert response.status_code == 200
    data = json.loads(response.data)
    assert 'access_token' in data['data']
    assert 'refresh_token' in data['data']
    assert data['data']['user']['role'] == UserRole.STUDENT.value


def test_login_invalid_credentials(client, student):
    """Test login with invalid credentials."""
    response = client.post('/api/auth/login',
        json={
            'email': 'student@example.com',
            'password': 'wrongpassword'
        })

    assert response.status_code == 401


def test_login_deactivated_account(client, student):
    student.is_active = False
    student.save()

    response = client.post('/api/auth/login',
        json={'email': 'student@example.com', 'password': 'password123'})

    assert response.status_code == 401
    assert response.get_json()['message'] == 'Account is deactivated'


def test_me_requires_token(client):
    response = client.get('/api/auth/me')
    assert response.status_code == 401


def test_me_and_refresh(client, student):
    login = client.post('/api/auth/login',
        json={'email': 'student@example.com', 'password': 'password123'}).get_json()['data']

    response = client.get('/api/auth/me', headers={'Authorization': f"Bearer {login['access_token']}"})
    assert response.status_code == 200
    assert response.get_json()['data']['id'] == student.id

    response = client.post('/api/auth/refresh', headers={'Authorization': f"Bearer {login['refresh_token']}"})
    assert response.status_code == 200
    assert 'access_token' in response.get_json()['data']
