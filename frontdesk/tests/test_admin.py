import datetime
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from frontdesk.exceptions import ConflictError
from frontdesk.models import Appointment, ClinicSettings, Consultation, Doctor, Staff, User
from frontdesk.services import accounts

from .conftest import PASSWORD

pytestmark = pytest.mark.django_db


def _new_doctor(client, **overrides):
    body = {
        'name': 'Nina Shah',
        'email': 'Nina@Clinic.test',
        'password': 'secret1',
        'mobile': '9000000100',
        'consultationFee': '450',
    }
    body.update(overrides)
    return client.post('/api/admin/doctors', body, format='json')


# ---------------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------------

def test_admin_creates_doctor_with_login(admin_client):
    r = _new_doctor(admin_client)
    assert r.status_code == 201
    data = r.data['data']
    assert data['email'] == 'nina@clinic.test'
    assert data['specialization'] == 'General Medicine'
    assert data['consultationFee'] == '450.00'
    assert data['status'] == 'Active'

    user = User.objects.get(email='nina@clinic.test')
    assert user.role == User.ROLE_DOCTOR
    assert user.check_password('secret1')
    assert Doctor.objects.get(id=data['id']).user == user

    login = APIClient().post('/api/auth/login', {'email': 'nina@clinic.test', 'password': 'secret1'}, format='json')
    assert login.status_code == 200
    assert login.data['data']['user']['doctorId'] == data['id']


def test_new_doctor_shows_up_in_available_list(admin_client, staff_client):
    assert staff_client.get('/api/appointments/doctors/available').data['data'] == []
    _new_doctor(admin_client)
    names = [d['name'] for d in staff_client.get('/api/appointments/doctors/available').data['data']]
    assert names == ['Nina Shah']


def test_create_doctor_requires_every_field(admin_client):
    r = admin_client.post('/api/admin/doctors', {'name': 'Nina', 'email': 'n@clinic.test'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'All fields are required'
    assert not Doctor.objects.exists()


def test_create_doctor_rejects_taken_email(admin_client, doctor_user):
    r = _new_doctor(admin_client, email='RAO@clinic.test')
    assert r.status_code == 400
    assert r.data['message'] == 'Email already exists'
    assert User.objects.filter(role=User.ROLE_DOCTOR).count() == 1


def test_create_doctor_rejects_short_password(admin_client):
    r = _new_doctor(admin_client, password='abc')
    assert r.status_code == 400
    assert 'at least 6 characters' in r.data['message']
    assert not User.objects.filter(email='nina@clinic.test').exists()


def test_admin_lists_and_searches_doctors(admin_client, doctor, other_doctor):
    r = admin_client.get('/api/admin/doctors')
    assert r.status_code == 200
    assert r.data['data']['total'] == 2

    r = admin_client.get('/api/admin/doctors', {'search': 'mehta'})
    assert [d['name'] for d in r.data['data']['doctors']] == ['Mehta']


def test_update_doctor_syncs_login(admin_client, doctor, doctor_user):
    r = admin_client.put(f'/api/admin/doctors/{doctor.id}', {
        'name': 'Asha R. Rao',
        'email': 'asha@clinic.test',
        'mobile': '9000000200',
        'consultationFee': '650',
        'password': 'newpass1',
    }, format='json')
    assert r.status_code == 200
    doctor.refresh_from_db()
    doctor_user.refresh_from_db()
    assert doctor.consultation_fee == Decimal('650.00')
    assert doctor.specialization == 'General'
    assert doctor_user.email == doctor_user.username == 'asha@clinic.test'
    assert doctor_user.name == 'Asha R. Rao'
    assert doctor_user.check_password('newpass1')


def test_update_doctor_requires_name_mobile_and_email(admin_client, doctor):
    r = admin_client.put(f'/api/admin/doctors/{doctor.id}', {'name': 'Asha'}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Name, mobile, and email are required'


def test_update_unknown_doctor_is_404(admin_client):
    r = admin_client.put('/api/admin/doctors/999', {
        'name': 'X', 'email': 'x@clinic.test', 'mobile': '9000000300',
    }, format='json')
    assert r.status_code == 404


def test_doctor_status_toggle_updates_login(admin_client, doctor, doctor_user):
    r = admin_client.patch(f'/api/admin/doctors/{doctor.id}/status', {'status': 'Inactive'}, format='json')
    assert r.status_code == 200
    assert r.data['data'] == {'status': 'Inactive'}
    doctor_user.refresh_from_db()
    assert doctor_user.status == 'Inactive'
    assert not doctor_user.is_clinic_active

    login = APIClient().post('/api/auth/login', {'email': doctor_user.email, 'password': PASSWORD}, format='json')
    assert login.status_code == 403


def test_doctor_status_must_be_known(admin_client, doctor):
    r = admin_client.patch(f'/api/admin/doctors/{doctor.id}/status', {'status': 'Away'}, format='json')
    assert r.status_code == 400
    doctor.refresh_from_db()
    assert doctor.status == 'Active'


def test_delete_doctor_removes_login(admin_client, other_doctor):
    user_id = other_doctor.user_id
    r = admin_client.delete(f'/api/admin/doctors/{other_doctor.id}')
    assert r.status_code == 200
    assert not Doctor.objects.filter(id=other_doctor.id).exists()
    assert not User.objects.filter(id=user_id).exists()


def test_delete_doctor_with_appointments_is_blocked(admin_client, doctor, make_appointment):
    make_appointment()
    r = admin_client.delete(f'/api/admin/doctors/{doctor.id}')
    assert r.status_code == 400
    assert 'inactive' in r.data['message']
    assert Doctor.objects.filter(id=doctor.id).exists()
    assert User.objects.filter(id=doctor.user_id).exists()


def test_doctor_patients_report_last_diagnosis(admin_client, doctor, patient, make_appointment):
    first = make_appointment(status=Appointment.STATUS_COMPLETED)
    make_appointment(appointment_date=datetime.date(2025, 3, 20))
    Consultation.objects.create(appointment=first, patient=patient, doctor=doctor, diagnosis='Viral fever')

    r = admin_client.get(f'/api/admin/doctors/{doctor.id}/patients')
    assert r.status_code == 200
    data = r.data['data']
    assert data['doctor']['name'] == 'Asha Rao'
    assert data['total'] == 1
    row = data['patients'][0]
    assert row['name'] == 'Ravi Kumar'
    assert row['totalAppointments'] == 2
    assert row['lastAppointmentDate'] == '2025-03-20'
    assert row['lastDiagnosis'] == 'Viral fever'


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

def test_admin_manages_staff_lifecycle(admin_client):
    r = admin_client.post('/api/admin/staff', {
        'name': 'Meera', 'email': 'meera@clinic.test', 'password': 'secret1', 'mobile': '9000000400',
    }, format='json')
    assert r.status_code == 201
    staff_id = r.data['data']['id']
    user = User.objects.get(email='meera@clinic.test')
    assert user.role == User.ROLE_STAFF

    r = admin_client.put(f'/api/admin/staff/{staff_id}', {
        'name': 'Meera K', 'email': 'meera@clinic.test', 'mobile': '9000000401', 'status': 'Inactive',
    }, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'Inactive'
    user.refresh_from_db()
    assert user.status == 'Inactive'
    assert user.check_password('secret1')

    r = admin_client.patch(f'/api/admin/staff/{staff_id}/status', {'status': 'Active'}, format='json')
    assert r.data['data'] == {'status': 'Active'}

    r = admin_client.delete(f'/api/admin/staff/{staff_id}')
    assert r.status_code == 200
    assert not Staff.objects.filter(id=staff_id).exists()
    assert not User.objects.filter(email='meera@clinic.test').exists()


def test_deleting_staff_keeps_their_bookings(admin_client, staff_user, make_appointment):
    appointment = make_appointment(created_by=staff_user)
    admin_client.delete(f'/api/admin/staff/{staff_user.staff_profile.id}')
    appointment.refresh_from_db()
    assert appointment.created_by is None


def test_staff_patients_list_doctors_seen(admin_client, staff_user, make_appointment, other_doctor, patient):
    make_appointment(created_by=staff_user)
    make_appointment(created_by=staff_user, doctor=other_doctor, appointment_time=datetime.time(11, 0))
    r = admin_client.get(f'/api/admin/staff/{staff_user.staff_profile.id}/patients')
    assert r.status_code == 200
    row = r.data['data']['patients'][0]
    assert row['id'] == patient.id
    assert row['totalAppointments'] == 2
    assert row['doctorsSeen'] == ['Asha Rao', 'Mehta']


def test_staff_patients_without_login_is_404(admin_client):
    orphan = Staff.objects.create(name='Former', mobile='9000000500')
    r = admin_client.get(f'/api/admin/staff/{orphan.id}/patients')
    assert r.status_code == 404
    assert r.data['message'] == 'Staff user account not found'


# ---------------------------------------------------------------------------
# Dashboard and settings
# ---------------------------------------------------------------------------

def test_admin_dashboard_counts(admin_client, staff_user, doctor, other_doctor, make_appointment):
    other_doctor.status = 'Inactive'
    other_doctor.save()
    make_appointment(status=Appointment.STATUS_COMPLETED)
    make_appointment(appointment_time=datetime.time(11, 0))

    r = admin_client.get('/api/admin/dashboard/stats')
    assert r.status_code == 200
    assert r.data['data'] == {
        'totalDoctors': 1,
        'totalStaff': 1,
        'totalPatients': 1,
        'totalAppointments': 2,
        'totalPayments': '500.00',
        'clinicStatus': 'Active',
        'clinicName': 'My Clinic',
    }


def test_settings_are_created_on_first_read(admin_client):
    r = admin_client.get('/api/admin/settings')
    assert r.status_code == 200
    assert r.data['data']['clinicName'] == 'My Clinic'
    assert ClinicSettings.objects.count() == 1


def test_settings_update_is_partial(admin_client):
    admin_client.get('/api/admin/settings')
    r = admin_client.put('/api/admin/settings', {'phone': '080-4000'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['phone'] == '080-4000'
    assert r.data['data']['clinicName'] == 'My Clinic'

    r = admin_client.put('/api/admin/settings', {}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'No fields to update'


def test_staff_reads_settings_and_roster(staff_client, doctor, other_doctor):
    assert staff_client.get('/api/staff/settings').data['data'] == {}
    ClinicSettings.objects.create(clinic_name='Sunrise Clinic')
    assert staff_client.get('/api/staff/settings').data['data']['clinicName'] == 'Sunrise Clinic'

    other_doctor.status = 'Inactive'
    other_doctor.save()
    rows = staff_client.get('/api/staff/doctors').data['data']
    assert [(d['name'], d['status']) for d in rows] == [('Asha Rao', 'Active'), ('Mehta', 'Inactive')]


@pytest.mark.parametrize('path', [
    '/api/admin/dashboard/stats',
    '/api/admin/doctors',
    '/api/admin/staff',
    '/api/admin/settings',
])
def test_admin_screens_are_admin_only(staff_client, doctor_client, path):
    assert staff_client.get(path).status_code == 403
    assert doctor_client.get(path).status_code == 403


def test_update_staff_rejects_email_of_another_account(admin_user, staff_user):
    with pytest.raises(ConflictError):
        accounts.update_staff(
            staff_user.staff_profile.id, name='Desk', email=admin_user.email, mobile='9000000001',
        )
