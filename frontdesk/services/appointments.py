"""
Appointment booking and status changes.

Booking runs in one transaction: the slot is guarded by a pre-check and
by the ``unique_active_slot`` constraint, the patient is resolved or
registered by mobile, and fee-bearing appointments are billed in a
savepoint whose failure is reported but does not undo the booking.
"""
import logging
from decimal import Decimal
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from frontdesk.exceptions import ConflictError, NotFoundError, ValidationError
from frontdesk.models import Appointment, Patient
from frontdesk.permissions import SCOPE_ALL, SCOPE_OWN, appointment_scope
from frontdesk.services import billing
from frontdesk.services.audit import log_action
from frontdesk.services.datetimes import format_time, normalize_date, normalize_time
from frontdesk.services.doctors import get_doctor, require_doctor_for_user
from frontdesk.services.events import publish_appointment
from frontdesk.services.outcome import Outcome
from frontdesk.services.patients import get_patient, resolve_or_create

logger = logging.getLogger(__name__)

SLOT_TAKEN = 'This time slot is already booked for this doctor'
VALID_STATUSES = {value for value, _ in Appointment.STATUS_CHOICES}


# ---------------------------------------------------------------------------
# Role scoped querysets
# ---------------------------------------------------------------------------

def _all_appointments(user):
    return Appointment.objects.all()


def _own_appointments(user):
    return Appointment.objects.filter(doctor=require_doctor_for_user(user))


APPOINTMENT_QUERIES = {
    SCOPE_ALL: _all_appointments,
    SCOPE_OWN: _own_appointments,
}


def appointments_for(user):
    """Appointments visible to ``user`` according to its role's scope."""
    scope = appointment_scope(user)
    if scope is None:
        raise PermissionDenied('Access denied.')
    return APPOINTMENT_QUERIES[scope](user)


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------

def slot_taken(doctor_id, date, time, *, exclude_id=None) -> bool:
    qs = Appointment.objects.filter(
        doctor_id=doctor_id, appointment_date=date, appointment_time=time,
    ).exclude(status=Appointment.STATUS_CANCELLED)
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


def book(*, doctor_id, date, time, patient_id=None, patient_name=None, patient_mobile=None,
         patient_age=None, patient_gender=None, reason=None, fee=None, created_by=None) -> Outcome[Appointment]:
    if not date or not time or not doctor_id:
        raise ValidationError('Date, time and doctor are required')
    if not patient_id and (not patient_name or not patient_mobile):
        raise ValidationError('Patient name and mobile are required for new patients')

    appointment_date = normalize_date(date)
    appointment_time = normalize_time(time)
    fee_amount = Decimal('0.00') if fee in (None, '') else billing.parse_amount(fee, 'Fee')
    doctor = get_doctor(doctor_id)

    if slot_taken(doctor.id, appointment_date, appointment_time):
        raise ConflictError(SLOT_TAKEN)

    with transaction.atomic():
        if patient_id:
            patient = get_patient(patient_id)
        else:
            patient, _ = resolve_or_create(
                patient_mobile, name=patient_name, age=patient_age,
                gender=patient_gender, created_by=created_by,
            )

        try:
            with transaction.atomic():
                appointment = Appointment.objects.create(
                    patient=patient,
                    doctor=doctor,
                    appointment_date=appointment_date,
                    appointment_time=appointment_time,
                    reason=reason or None,
                    fee=fee_amount,
                    status=Appointment.STATUS_WAITING,
                    created_by=created_by,
                )
        except IntegrityError:
            raise ConflictError(SLOT_TAKEN)

        Patient.objects.filter(pk=patient.pk).update(
            total_visits=F('total_visits') + 1, last_visit=appointment_date,
        )
        patient.refresh_from_db()

        outcome = Outcome(appointment, extras={'patient': patient, 'payment': None, 'invoice': None})
        if fee_amount > 0:
            try:
                with transaction.atomic():
                    payment, invoice = billing.create_payment_and_invoice(appointment, created_by=created_by)
            except Exception as exc:
                logger.warning('billing failed for appointment %s: %s', appointment.id, exc, exc_info=True)
                outcome.fail(f"Payment/invoice not created: {exc}")
            else:
                outcome.extras.update(payment=payment, invoice=invoice)

        log_action(user=created_by, action='appointment_book', object_type='appointment', object_id=appointment.id,
                   detail={'doctorId': doctor.id, 'patientId': patient.id, 'fee': str(fee_amount),
                           'billingFailures': outcome.failures})
        publish_appointment(appointment)

    logger.info('booked appointment %s for doctor %s on %s %s',
                appointment.id, doctor.id, appointment_date, format_time(appointment_time))
    return outcome


def update_status(appointment_id, new_status, *, user=None) -> dict:
    """Set any of the four statuses; transitions are not restricted here."""
    if not new_status:
        raise ValidationError('Status is required')
    if new_status not in VALID_STATUSES:
        raise ValidationError('Invalid status')

    with transaction.atomic():
        appointment = Appointment.objects.select_for_update().filter(id=appointment_id).first()
        if not appointment:
            raise NotFoundError('Appointment not found')
        old_status = appointment.status
        appointment.status = new_status
        try:
            with transaction.atomic():
                appointment.save(update_fields=['status', 'updated_at'])
        except IntegrityError:
            raise ConflictError(SLOT_TAKEN)
        log_action(user=user, action='appointment_status', object_type='appointment', object_id=appointment.id,
                   detail={'from': old_status, 'to': new_status})
        publish_appointment(appointment)
    return {'status': new_status}


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def format_appointment(a: Appointment) -> dict:
    creator = a.created_by
    return {
        'id': a.id,
        'patientId': a.patient_id,
        'patientName': a.patient.name,
        'patientMobile': a.patient.mobile,
        'patientAge': a.patient.age,
        'patientGender': a.patient.gender,
        'doctorId': a.doctor_id,
        'doctorName': a.doctor.name,
        'specialization': a.doctor.specialization,
        'date': a.appointment_date.isoformat(),
        'time': format_time(a.appointment_time),
        'reason': a.reason,
        'fee': billing.format_amount(a.fee),
        'status': a.status,
        'createdByName': creator.display_name() if creator else None,
        'createdByRole': creator.role if creator else None,
    }


def list_appointments(user, *, date=None, status: Optional[str]=None, doctor_id=None,
                      page: int=1, limit: int=20) -> dict:
    qs = appointments_for(user).select_related('patient', 'doctor', 'created_by')
    if date:
        qs = qs.filter(appointment_date=normalize_date(date))
    if status:
        qs = qs.filter(status=status)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    total = qs.count()
    start = (page - 1) * limit
    items = qs.order_by('-appointment_date', '-appointment_time', '-id')[start:start + limit]
    return {
        'appointments': [format_appointment(a) for a in items],
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }


def todays_appointments(user, *, q: Optional[str]=None, status: Optional[str]=None,
                        page: int=1, limit: int=20) -> dict:
    """The caller's appointments for today in time order, with the waiting count."""
    today = appointments_for(user).filter(appointment_date=timezone.localdate())
    qs = today.select_related('patient', 'doctor', 'created_by')
    if q:
        qs = qs.filter(Q(patient__name__icontains=q) | Q(patient__mobile__icontains=q))
    if status:
        qs = qs.filter(status=status)
    total = qs.count()
    start = (page - 1) * limit
    items = qs.order_by('appointment_time', 'id')[start:start + limit]
    return {
        'appointments': [format_appointment(a) for a in items],
        'pending': today.filter(status=Appointment.STATUS_WAITING).count(),
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }
