"""
Database models for the clinic backend.

The models capture users and their roles, doctors and staff, patients,
appointments, consultation notes and the billing records derived from
them.  Relations are always by foreign key; a consultation, payment or
invoice belongs to exactly one appointment.
"""
from __future__ import annotations

import datetime
import os
import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.db.models import Q


STATUS_ACTIVE = 'Active'
STATUS_INACTIVE = 'Inactive'
ACTIVE_STATUS_CHOICES = [
    (STATUS_ACTIVE, 'Active'),
    (STATUS_INACTIVE, 'Inactive'),
]


class ClinicUserManager(UserManager):
    """Keep ``email`` as the login identifier while reusing ``username``."""

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        username = username or email
        return super().create_user(username, email, password, **extra_fields)


class User(AbstractUser):
    """Custom user model carrying the clinic role.

    Roles mirror the front-end roles: ``ADMIN``, ``DOCTOR`` and ``STAFF``.
    Login is by email; ``status`` gates access independently from the
    credential, an inactive account is refused with 403.
    """
    ROLE_ADMIN = 'ADMIN'
    ROLE_DOCTOR = 'DOCTOR'
    ROLE_STAFF = 'STAFF'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_STAFF, 'Front desk staff'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_STAFF, db_index=True)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=10, choices=ACTIVE_STATUS_CHOICES, default=STATUS_ACTIVE)

    objects = ClinicUserManager()

    @property
    def is_clinic_active(self) -> bool:
        return self.is_active and self.status == STATUS_ACTIVE

    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.username

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Doctor(models.Model):
    """A doctor listed by the clinic, optionally linked to a login."""
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_profile'
    )
    name = models.CharField(max_length=255)
    specialization = models.CharField(max_length=255, blank=True)
    qualification = models.CharField(max_length=255, blank=True)
    mobile = models.CharField(max_length=20, blank=True)
    # Copied onto each appointment at booking time; null means no fee.
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, default=0)
    status = models.CharField(max_length=10, choices=ACTIVE_STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Dr. {self.name} ({self.specialization})"


class Staff(models.Model):
    """Front desk staff member profile."""
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='staff_profile'
    )
    name = models.CharField(max_length=255)
    mobile = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=10, choices=ACTIVE_STATUS_CHOICES, default=STATUS_ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Patient(models.Model):
    """A patient of the clinic, keyed by a normalised 10-digit mobile."""
    GENDER_CHOICES = [
        ('Male', 'Male'),
        ('Female', 'Female'),
        ('Other', 'Other'),
    ]
    name = models.CharField(max_length=255)
    mobile = models.CharField(max_length=10, unique=True)
    age = models.PositiveIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, default='Male')
    address = models.TextField(blank=True, null=True)
    blood_group = models.CharField(max_length=5, blank=True, null=True)
    registered_date = models.DateField(default=datetime.date.today)
    total_visits = models.PositiveIntegerField(default=0)
    last_visit = models.DateField(null=True, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.mobile})"


class Appointment(models.Model):
    STATUS_SCHEDULED = 'Scheduled'
    STATUS_WAITING = 'Waiting'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_WAITING, 'Waiting'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='appointments')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='appointments')
    appointment_date = models.DateField(db_index=True)
    appointment_time = models.TimeField()
    reason = models.TextField(blank=True, null=True)
    fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_WAITING, db_index=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            # One live appointment per slot; cancelled rows free the slot.
            models.UniqueConstraint(
                fields=['doctor', 'appointment_date', 'appointment_time'],
                condition=~Q(status='Cancelled'),
                name='unique_active_slot',
            ),
        ]
        indexes = [
            models.Index(fields=['doctor', 'appointment_date'], name='frontdesk_a_doctor__1b4e9f_idx'),
            models.Index(fields=['patient', 'appointment_date'], name='frontdesk_a_patient_8c2d31_idx'),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} {self.appointment_date} {self.appointment_time}"


class Consultation(models.Model):
    """Clinical note recorded for an appointment."""
    appointment = models.OneToOneField(Appointment, on_delete=models.CASCADE, related_name='consultation')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='consultations')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='consultations')
    visit_number = models.PositiveIntegerField(default=1)

    chief_complaints = models.TextField(blank=True, default='')
    comorbidities = models.TextField(blank=True, default='')
    imaging_findings = models.TextField(blank=True, default='')
    diagnosis = models.TextField(blank=True, default='')
    treatment_plan = models.TextField(blank=True, default='')
    follow_up_notes = models.TextField(blank=True, default='')
    vitals = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'created_at'], name='frontdesk_c_patient_5a7e02_idx')]

    def __str__(self) -> str:
        return f"consult {self.id} appt={self.appointment_id} visit={self.visit_number}"


def _media_upload(instance, filename: str) -> str:
    ext = os.path.splitext(filename)[1]
    folder = 'documents' if instance.file_type == ConsultationMedia.TYPE_PDF else 'images'
    return f"{folder}/{datetime.date.today().strftime('%Y/%m')}/{uuid.uuid4().hex}{ext}"


class ConsultationMedia(models.Model):
    TYPE_IMAGE = 'IMAGE'
    TYPE_PDF = 'PDF'
    TYPE_CHOICES = ((TYPE_IMAGE, 'IMAGE'), (TYPE_PDF, 'PDF'))

    consultation = models.ForeignKey(Consultation, on_delete=models.CASCADE, related_name='media')
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='media')
    file = models.FileField(upload_to=_media_upload, max_length=512)
    file_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=8, choices=TYPE_CHOICES, default=TYPE_IMAGE)
    content_type = models.CharField(max_length=128, blank=True)
    size = models.PositiveIntegerField(default=0)
    uploaded_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"media {self.id} consult={self.consultation_id}"


class Payment(models.Model):
    STATUS_COMPLETED = 'Completed'
    STATUS_CHOICES = [(STATUS_COMPLETED, 'Completed')]

    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments'
    )
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='payments')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_date = models.DateField(db_index=True)
    payment_method = models.CharField(max_length=32, default='Cash')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED)
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments_created'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['appointment'],
                condition=Q(appointment__isnull=False),
                name='one_payment_per_appointment',
            ),
        ]

    def __str__(self) -> str:
        return f"payment {self.id} appt={self.appointment_id} {self.amount}"


class InvoiceSequence(models.Model):
    """Allocates invoice numbers; each row is one issued number."""
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"invoice seq {self.id}"


class Invoice(models.Model):
    STATUS_GENERATED = 'Generated'
    STATUS_CHOICES = [(STATUS_GENERATED, 'Generated')]

    invoice_number = models.CharField(max_length=32, unique=True)
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices'
    )
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='invoices')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='invoices')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    invoice_date = models.DateField(db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_GENERATED)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.invoice_number


class ClinicSettings(models.Model):
    """Clinic letterhead shown on printed invoices (single row)."""
    clinic_name = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)

    class Meta:
        verbose_name_plural = 'clinic settings'

    def __str__(self) -> str:
        return self.clinic_name or 'Clinic settings'


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='frontdesk_a_action_3f9c7d_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='frontdesk_a_object__e21b64_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
