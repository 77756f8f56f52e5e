import pytest
from django.core.management import call_command

from frontdesk.models import Appointment, Doctor, Payment, User

pytestmark = pytest.mark.django_db


def test_ensure_demo_users_is_idempotent():
    call_command('ensure_demo_users', password='s3cret-demo')
    call_command('ensure_demo_users', password='s3cret-demo')
    assert User.objects.count() == 3
    doctor_user = User.objects.get(role=User.ROLE_DOCTOR)
    assert doctor_user.check_password('s3cret-demo')
    assert Doctor.objects.filter(user=doctor_user).count() == 1
    assert User.objects.get(role=User.ROLE_ADMIN).is_superuser


def test_sync_payments_command(make_appointment, capsys):
    make_appointment(status=Appointment.STATUS_COMPLETED)
    call_command('sync_payments')
    assert Payment.objects.count() == 1
    assert 'Synced 1 payments.' in capsys.readouterr().out
