import pytest
from rest_framework.test import APIClient

from frontdesk.models import AuditEvent, User

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


def login(client, email, password=PASSWORD, **extra):
    return client.post('/api/auth/login', {'email': email, 'password': password, **extra}, format='json')


def test_login_returns_token_and_profile(doctor_user, doctor):
    r = login(APIClient(), 'RAO@clinic.test', role='DOCTOR')
    assert r.status_code == 200
    assert r.data['success'] is True
    data = r.data['data']
    assert data['token'] and data['refresh']
    assert data['user']['role'] == 'DOCTOR'
    assert data['user']['doctorId'] == doctor.id
    assert AuditEvent.objects.filter(action='login', user=doctor_user).exists()


def test_bearer_token_reaches_protected_endpoint(staff_user):
    client = APIClient()
    token = login(client, staff_user.email).data['data']['token']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    r = client.get('/api/auth/me')
    assert r.status_code == 200
    assert r.data['data']['email'] == staff_user.email
    assert 'staffId' in r.data['data']


def test_wrong_password_or_role_is_401(staff_user):
    client = APIClient()
    r = login(client, staff_user.email, password='nope')
    assert r.status_code == 401
    assert r.data == {'success': False, 'message': 'Invalid credentials'}
    assert login(client, staff_user.email, role='ADMIN').status_code == 401
    assert login(client, 'ghost@clinic.test').status_code == 401


def test_inactive_account_is_403(staff_user):
    client = APIClient()
    token = login(client, staff_user.email).data['data']['token']
    staff_user.status = 'Inactive'
    staff_user.save()

    r = login(client, staff_user.email)
    assert r.status_code == 403
    assert r.data['message'] == 'Account is inactive. Contact admin.'

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    assert client.get('/api/auth/me').status_code == 403


def test_missing_or_bad_token_is_401():
    client = APIClient()
    r = client.get('/api/staff/dashboard')
    assert r.status_code == 401
    assert r.data['success'] is False
    client.credentials(HTTP_AUTHORIZATION='Bearer not-a-jwt')
    assert client.get('/api/staff/dashboard').status_code == 401


def test_refresh_and_logout(staff_user):
    client = APIClient()
    data = login(client, staff_user.email).data['data']
    r = client.post('/api/auth/refresh', {'refresh': data['refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['token']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['token']}")
    r = client.post('/api/auth/logout', {}, format='json')
    assert r.status_code == 200
    assert r.data['data']['blacklisted'] >= 1


def test_logout_refuses_another_users_refresh_token(staff_user, admin_user):
    owner = login(APIClient(), admin_user.email).data['data']

    client = APIClient()
    token = login(client, staff_user.email).data['data']['token']
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    r = client.post('/api/auth/logout', {'refresh': owner['refresh']}, format='json')
    assert r.status_code == 403
    assert r.data['message'] == 'Token does not belong to the current user'

    r = APIClient().post('/api/auth/refresh', {'refresh': owner['refresh']}, format='json')
    assert r.status_code == 200


def test_logout_blacklists_own_refresh_token(staff_user):
    client = APIClient()
    data = login(client, staff_user.email).data['data']
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['token']}")
    r = client.post('/api/auth/logout', {'refresh': data['refresh']}, format='json')
    assert r.data['data'] == {'blacklisted': 1}

    r = APIClient().post('/api/auth/refresh', {'refresh': data['refresh']}, format='json')
    assert r.status_code == 401


def test_profile_update_changes_name(staff_client, staff_user):
    r = staff_client.put('/api/auth/profile', {'name': '  Front Desk  '}, format='json')
    assert r.status_code == 200
    assert r.data['data']['name'] == 'Front Desk'
    staff_user.refresh_from_db()
    assert staff_user.name == 'Front Desk'

    r = staff_client.put('/api/auth/profile', {'name': ''}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Name is required'


def test_change_password(staff_client, staff_user):
    r = staff_client.post('/api/auth/change-password',
                          {'currentPassword': PASSWORD, 'newPassword': 'fresh-pass'}, format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Password changed successfully'
    staff_user.refresh_from_db()
    assert staff_user.check_password('fresh-pass')
    assert login(APIClient(), staff_user.email, password='fresh-pass').status_code == 200


@pytest.mark.parametrize('body,status,message', [
    ({'currentPassword': PASSWORD}, 400, 'Current password and new password are required'),
    ({'currentPassword': PASSWORD, 'newPassword': 'abc'}, 400, 'New password must be at least 6 characters long'),
    ({'currentPassword': 'wrong-one', 'newPassword': 'fresh-pass'}, 401, 'Current password is incorrect'),
])
def test_change_password_rejections(staff_client, staff_user, body, status, message):
    r = staff_client.post('/api/auth/change-password', body, format='json')
    assert r.status_code == status
    assert r.data['message'] == message
    staff_user.refresh_from_db()
    assert staff_user.check_password(PASSWORD)


def test_role_gates(doctor_client, staff_client):
    r = doctor_client.get('/api/staff/dashboard')
    assert r.status_code == 403
    assert r.data['message'].startswith('Access denied.')
    assert staff_client.get('/api/doctor/dashboard').status_code == 403
    assert staff_client.get('/api/staff/dashboard').status_code == 200


def test_doctor_lists_only_own_appointments(doctor_client, admin_client, make_appointment, other_doctor):
    own = make_appointment()
    make_appointment(doctor=other_doctor)

    r = doctor_client.get('/api/doctor/appointments')
    assert [a['id'] for a in r.data['data']['appointments']] == [own.id]

    r = admin_client.get('/api/staff/appointments')
    assert r.data['data']['total'] == 2


def test_health(client):
    r = client.get('/api/health')
    assert r.status_code == 200
    assert r.json()['data']['db'] is True
