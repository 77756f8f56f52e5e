"""
Consultation notes tied one-to-one to appointments.

Saving a consultation finalises its appointment: the note is created or
updated in place, the appointment becomes ``Completed``, a payment is
recorded for fee-bearing appointments that lack one, and the patient's
last visit moves to today.
"""
import json
import logging
from typing import Any, Dict

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from frontdesk.exceptions import NotFoundError, ValidationError
from frontdesk.models import Appointment, Consultation, ConsultationMedia, Patient
from frontdesk.permissions import SCOPE_OWN, appointment_scope
from frontdesk.services import billing
from frontdesk.services.appointments import appointments_for
from frontdesk.services.audit import log_action
from frontdesk.services.datetimes import format_time
from frontdesk.services.doctors import doctor_for_user
from frontdesk.services.events import publish_appointment
from frontdesk.services.outcome import Outcome

logger = logging.getLogger(__name__)

# Request field -> model field for the free-text clinical notes.
CLINICAL_FIELDS = {
    'chiefComplaints': 'chief_complaints',
    'comorbidities': 'comorbidities',
    'imagingFindings': 'imaging_findings',
    'diagnosis': 'diagnosis',
    'treatmentPlan': 'treatment_plan',
    'followUpNotes': 'follow_up_notes',
}


def _scoped_appointment(appointment_id, user, *, for_update=False) -> Appointment:
    qs = appointments_for(user).select_related('patient', 'doctor')
    if for_update:
        qs = qs.select_for_update()
    appointment = qs.filter(id=appointment_id).first()
    if not appointment:
        raise NotFoundError('Appointment not found')
    return appointment


def _clean(text) -> str:
    return str(text or '').strip()


def _vitals(value) -> Any:
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return value
        return decoded if isinstance(decoded, dict) else value
    return value


def format_consultation(c: Consultation) -> dict:
    data = {
        'id': c.id,
        'appointmentId': c.appointment_id,
        'patientId': c.patient_id,
        'doctorId': c.doctor_id,
        'visitNumber': c.visit_number,
        'vitals': c.vitals,
        'createdAt': c.created_at.isoformat() if c.created_at else None,
        'updatedAt': c.updated_at.isoformat() if c.updated_at else None,
    }
    for key, attr in CLINICAL_FIELDS.items():
        data[key] = getattr(c, attr)
    return data


def format_media(m: ConsultationMedia) -> dict:
    return {
        'id': m.id,
        'consultationId': m.consultation_id,
        'fileName': m.file_name,
        'fileType': m.file_type,
        'fileUrl': m.file.url if m.file else None,
        'size': m.size,
        'createdAt': m.created_at.isoformat() if m.created_at else None,
    }


def get_for_appointment(appointment_id, user) -> dict:
    """Everything the consultation screen needs for one appointment."""
    appointment = _scoped_appointment(appointment_id, user)
    patient = appointment.patient

    existing = Consultation.objects.filter(appointment=appointment).first()
    history_qs = (
        Consultation.objects.filter(patient=patient)
        .exclude(appointment=appointment)
        .select_related('appointment', 'doctor')
        .order_by('-appointment__appointment_date', '-appointment__appointment_time', '-id')
    )
    limit = getattr(settings, 'CONSULTATION_HISTORY_LIMIT', 10)
    history = [{
        'id': h.id,
        'date': h.appointment.appointment_date.isoformat(),
        'time': format_time(h.appointment.appointment_time),
        'visit': 'Follow-up' if h.visit_number > 1 else 'Initial Consultation',
        'visitNumber': h.visit_number,
        'doctor': h.doctor.name,
        'notes': {
            'chiefComplaints': h.chief_complaints,
            'diagnosis': h.diagnosis,
            'treatmentPlan': h.treatment_plan,
        },
    } for h in history_qs[:limit]]

    media = []
    if existing:
        media = [format_media(m) for m in existing.media.order_by('-id')]

    return {
        'patient': {
            'id': patient.id,
            'name': patient.name,
            'mobile': patient.mobile,
            'age': patient.age,
            'gender': patient.gender,
            'address': patient.address,
            'bloodGroup': patient.blood_group,
        },
        'appointment': {
            'id': appointment.id,
            'date': appointment.appointment_date.isoformat(),
            'time': format_time(appointment.appointment_time),
            'reason': appointment.reason,
            'status': appointment.status,
            'fee': billing.format_amount(appointment.fee),
        },
        'history': history,
        'existingConsultation': format_consultation(existing) if existing else None,
        'mediaFiles': media,
    }


def save(appointment_id, fields: Dict[str, Any], user) -> Outcome[Consultation]:
    """Create or update the appointment's consultation and finalise it."""
    with transaction.atomic():
        appointment = _scoped_appointment(appointment_id, user, for_update=True)
        patient_id = appointment.patient_id
        if appointment_scope(user) == SCOPE_OWN:
            doctor = doctor_for_user(user)
        else:
            doctor = appointment.doctor

        visit_number = Consultation.objects.filter(patient_id=patient_id).count() + 1
        values = {attr: _clean(fields.get(key)) for key, attr in CLINICAL_FIELDS.items()}
        values['vitals'] = _vitals(fields.get('vitals'))

        consultation = Consultation.objects.select_for_update().filter(appointment=appointment).first()
        created = consultation is None
        if created:
            consultation = Consultation.objects.create(
                appointment=appointment,
                patient_id=patient_id,
                doctor=doctor,
                visit_number=visit_number,
                **values,
            )
        else:
            for attr, value in values.items():
                setattr(consultation, attr, value)
            consultation.save(update_fields=[*values.keys(), 'updated_at'])

        appointment.status = Appointment.STATUS_COMPLETED
        appointment.save(update_fields=['status', 'updated_at'])

        outcome = Outcome(consultation, extras={'created': created, 'payment': None})
        if appointment.fee > 0:
            try:
                with transaction.atomic():
                    payment, _ = billing.ensure_payment(appointment, created_by=user)
            except Exception as exc:
                logger.warning('payment failed for appointment %s: %s', appointment.id, exc, exc_info=True)
                outcome.fail(f"Payment not recorded: {exc}")
            else:
                outcome.extras['payment'] = payment

        Patient.objects.filter(pk=patient_id).update(last_visit=timezone.localdate())

        log_action(user=user, action='consultation_save', object_type='consultation', object_id=consultation.id,
                   detail={'appointmentId': appointment.id, 'created': created, 'visitNumber': consultation.visit_number})
        publish_appointment(appointment)

    consultation.refresh_from_db()
    return outcome


RECENT_CONSULTATIONS_LIMIT = 50


def recent_consultations(user, *, limit: int=RECENT_CONSULTATIONS_LIMIT) -> list[dict]:
    """Latest consultations visible to ``user``; doctors see only their own."""
    qs = (
        Consultation.objects.filter(appointment__in=appointments_for(user))
        .select_related('appointment', 'patient', 'doctor')
        .order_by('-created_at', '-id')[:limit]
    )
    return [{
        'id': c.id,
        'appointmentId': c.appointment_id,
        'patientName': c.patient.name,
        'patientAge': c.patient.age,
        'patientGender': c.patient.gender,
        'doctorName': c.doctor.name,
        'date': c.appointment.appointment_date.isoformat(),
        'time': format_time(c.appointment.appointment_time),
        'reason': c.appointment.reason,
        'diagnosis': c.diagnosis,
        'createdAt': c.created_at.isoformat() if c.created_at else None,
    } for c in qs]


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

def _consultation(consultation_id, user) -> Consultation:
    consultation = Consultation.objects.filter(id=consultation_id, appointment__in=appointments_for(user)).first()
    if not consultation:
        raise NotFoundError('Consultation not found')
    return consultation


def list_media(consultation_id, user) -> list[dict]:
    consultation = _consultation(consultation_id, user)
    return [format_media(m) for m in consultation.media.order_by('-id')]


def upload_media(consultation_id, f, user) -> ConsultationMedia:
    if f is None:
        raise ValidationError('No file uploaded')
    consultation = _consultation(consultation_id, user)
    size_mb = (f.size or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValidationError(f"File too large. Maximum size is {settings.UPLOAD_MAX_MB}MB.")
    ctype = getattr(f, 'content_type', '') or ''
    if ctype not in settings.ALLOWED_UPLOAD_TYPES:
        raise ValidationError('Invalid file type. Only images and PDFs are allowed.')
    file_type = ConsultationMedia.TYPE_PDF if 'pdf' in ctype else ConsultationMedia.TYPE_IMAGE
    media = ConsultationMedia(
        consultation=consultation,
        patient_id=consultation.patient_id,
        file_name=getattr(f, 'name', '') or 'upload',
        file_type=file_type,
        content_type=ctype,
        size=f.size or 0,
        uploaded_by=user,
    )
    media.file.save(media.file_name, f, save=False)
    media.save()
    return media


def delete_media(consultation_id, media_id, user) -> None:
    consultation = _consultation(consultation_id, user)
    media = consultation.media.filter(id=media_id).first()
    if not media:
        raise NotFoundError('Media file not found')
    media.file.delete(save=False)
    media.delete()
