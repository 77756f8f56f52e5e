from django.core.management.base import BaseCommand
from django.db import transaction

from frontdesk.models import Doctor, Staff, User
from frontdesk.services.doctors import forget_available_doctors

DEMO_PASSWORD = "clinic123"
DEMO_SET = [
    ("admin@clinic.local", User.ROLE_ADMIN, "Clinic Admin"),
    ("doctor@clinic.local", User.ROLE_DOCTOR, "Asha Rao"),
    ("staff@clinic.local", User.ROLE_STAFF, "Front Desk"),
]


class Command(BaseCommand):
    help = "Ensure one ADMIN, DOCTOR and STAFF login exist with the demo password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default=DEMO_PASSWORD)

    @transaction.atomic
    def handle(self, *args, **opts):
        for email, role, name in DEMO_SET:
            u, created = User.objects.get_or_create(
                email=email,
                defaults={"username": email, "role": role, "name": name},
            )
            u.role = role
            u.name = u.name or name
            u.status = "Active"
            u.is_active = True
            u.is_staff = role == User.ROLE_ADMIN
            u.is_superuser = role == User.ROLE_ADMIN
            u.set_password(opts["password"])
            u.save()

            if role == User.ROLE_DOCTOR:
                Doctor.objects.get_or_create(
                    user=u,
                    defaults={"name": name, "specialization": "General Medicine",
                              "qualification": "MBBS", "consultation_fee": 500},
                )
                forget_available_doctors()
            elif role == User.ROLE_STAFF:
                Staff.objects.get_or_create(user=u, defaults={"name": name})
            self.stdout.write(self.style.SUCCESS(f"ok: {email} ({role}){' created' if created else ''}"))
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
