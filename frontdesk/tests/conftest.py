import datetime
from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from frontdesk.models import Appointment, Doctor, Patient, Staff, User

PASSWORD = 'Cl1nic-pass!'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the doctors list live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(email='admin@clinic.test', password=PASSWORD, role=User.ROLE_ADMIN, name='Admin')


@pytest.fixture
def staff_user(db):
    u = User.objects.create_user(email='desk@clinic.test', password=PASSWORD, role=User.ROLE_STAFF, name='Desk')
    Staff.objects.create(user=u, name='Desk', mobile='9000000001')
    return u


@pytest.fixture
def doctor_user(db):
    return User.objects.create_user(email='rao@clinic.test', password=PASSWORD, role=User.ROLE_DOCTOR, name='Asha Rao')


@pytest.fixture
def doctor(doctor_user):
    return Doctor.objects.create(user=doctor_user, name='Asha Rao', specialization='General',
                                 qualification='MBBS', consultation_fee=Decimal('500.00'))


@pytest.fixture
def other_doctor(db):
    u = User.objects.create_user(email='mehta@clinic.test', password=PASSWORD, role=User.ROLE_DOCTOR, name='Mehta')
    return Doctor.objects.create(user=u, name='Mehta', specialization='ENT', consultation_fee=Decimal('300.00'))


@pytest.fixture
def patient(db):
    return Patient.objects.create(name='Ravi Kumar', mobile='9876543210', age=41, gender='Male')


@pytest.fixture
def make_appointment(patient, doctor):
    def _make(**kwargs):
        values = {
            'patient': patient,
            'doctor': doctor,
            'appointment_date': datetime.date(2025, 3, 14),
            'appointment_time': datetime.time(10, 30),
            'fee': Decimal('500.00'),
            'status': Appointment.STATUS_WAITING,
        }
        values.update(kwargs)
        return Appointment.objects.create(**values)
    return _make


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def staff_client(staff_user):
    return _client_for(staff_user)


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def doctor_client(doctor_user, doctor):
    return _client_for(doctor_user)
