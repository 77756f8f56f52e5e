import logging
import re
from typing import Optional

from django.db import transaction
from django.db.models import Count, Max, OuterRef, Q, Subquery
from django.utils import timezone

from frontdesk.exceptions import ConflictError, NotFoundError, ValidationError
from frontdesk.models import Appointment, Consultation, Patient
from frontdesk.services.audit import log_action

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r'\D')


def normalize_mobile(value) -> str:
    """Strip everything but digits; the result must be exactly 10 digits."""
    digits = _NON_DIGIT.sub('', str(value or ''))
    if len(digits) != 10:
        raise ValidationError('Mobile number must be exactly 10 digits')
    return digits


def _require_name(name) -> str:
    name = (name or '').strip()
    if not name:
        raise ValidationError('Name and mobile are required')
    return name


def resolve_or_create(mobile, *, name=None, age=None, gender=None, address=None, created_by=None) -> tuple[Patient, bool]:
    """Return the patient holding ``mobile``, registering one if absent.

    An existing record is returned untouched; the demographic arguments only
    seed a new record.
    """
    digits = normalize_mobile(mobile)
    patient, created = Patient.objects.get_or_create(
        mobile=digits,
        defaults={
            'name': (name or '').strip(),
            'age': age or None,
            'gender': gender or 'Male',
            'address': address or None,
            'registered_date': timezone.localdate(),
            'created_by': created_by,
        },
    )
    if created:
        logger.info('registered patient %s via booking', patient.id)
    return patient, created


def add_patient(*, name, mobile, age=None, gender=None, address=None, created_by=None) -> Patient:
    """Explicit registration; a mobile already on file is a conflict."""
    name = _require_name(name)
    if not mobile:
        raise ValidationError('Name and mobile are required')
    digits = normalize_mobile(mobile)
    if Patient.objects.filter(mobile=digits).exists():
        raise ConflictError('Patient with this mobile number already exists')
    patient, created = resolve_or_create(
        digits, name=name, age=age, gender=gender, address=address, created_by=created_by,
    )
    if not created:
        raise ConflictError('Patient with this mobile number already exists')
    log_action(user=created_by, action='patient_create', object_type='patient', object_id=patient.id)
    return patient


def get_patient(patient_id) -> Patient:
    try:
        patient_id = int(patient_id)
    except (TypeError, ValueError):
        raise NotFoundError('Patient not found')
    patient = Patient.objects.filter(id=patient_id).first()
    if not patient:
        raise NotFoundError('Patient not found')
    return patient


@transaction.atomic
def update_patient(patient_id, *, name, mobile, age=None, gender=None, address=None, updated_by=None) -> Patient:
    name = _require_name(name)
    if not mobile:
        raise ValidationError('Name and mobile are required')
    digits = normalize_mobile(mobile)
    patient = Patient.objects.select_for_update().filter(id=patient_id).first()
    if not patient:
        raise NotFoundError('Patient not found')
    if Patient.objects.filter(mobile=digits).exclude(id=patient.id).exists():
        raise ConflictError('Another patient with this mobile number already exists')
    patient.name = name
    patient.mobile = digits
    patient.age = age or None
    patient.gender = gender or 'Male'
    patient.address = address or None
    patient.save(update_fields=['name', 'mobile', 'age', 'gender', 'address', 'updated_at'])
    log_action(user=updated_by, action='patient_update', object_type='patient', object_id=patient.id)
    return patient


@transaction.atomic
def delete_patient(patient_id, *, deleted_by=None) -> None:
    patient = get_patient(patient_id)
    if patient.appointments.exists():
        raise ConflictError('Cannot delete patient with active/past appointments. Please cancel them first.')
    patient.delete()
    log_action(user=deleted_by, action='patient_delete', object_type='patient', object_id=int(patient_id))


def search_by_mobile(mobile) -> Optional[Patient]:
    return Patient.objects.filter(mobile=normalize_mobile(mobile)).first()


def list_patients(*, q: Optional[str]=None, page: int=1, limit: int=20):
    qs = Patient.objects.all()
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(mobile__icontains=q))
    total = qs.count()
    start = (page - 1) * limit
    return list(qs.order_by('-created_at', '-id')[start:start + limit]), total


def format_patient(p: Patient) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'mobile': p.mobile,
        'age': p.age,
        'gender': p.gender,
        'address': p.address,
        'bloodGroup': p.blood_group,
        'registeredDate': p.registered_date.isoformat() if p.registered_date else None,
        'totalVisits': p.total_visits,
        'lastVisit': p.last_visit.isoformat() if p.last_visit else None,
    }


def patient_history(patient: Patient):
    """All consultations of ``patient``, newest first."""
    return (
        Consultation.objects.filter(patient=patient)
        .select_related('appointment', 'doctor')
        .order_by('-created_at', '-id')
    )


def _page(qs, page, limit) -> dict:
    total = qs.count()
    start = (page - 1) * limit
    return {
        'items': list(qs[start:start + limit]),
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }


def _search(qs, q):
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(mobile__icontains=q))
    return qs


def patients_of_doctor(doctor, *, q: Optional[str]=None, page: int=1, limit: int=20) -> dict:
    """Patients with at least one appointment with ``doctor``, most recent first."""
    last_diagnosis = (
        Consultation.objects.filter(patient=OuterRef('pk'), doctor=doctor)
        .order_by('-created_at', '-id').values('diagnosis')[:1]
    )
    qs = _search(Patient.objects.filter(appointments__doctor=doctor), q).annotate(
        appointment_count=Count('appointments', distinct=True),
        last_appointment=Max('appointments__appointment_date'),
        last_diagnosis=Subquery(last_diagnosis),
    ).order_by('-last_appointment', '-id')
    result = _page(qs, page, limit)
    items = result.pop('items')
    result['patients'] = [{
        **format_patient(p),
        'totalAppointments': p.appointment_count,
        'lastAppointmentDate': p.last_appointment.isoformat() if p.last_appointment else None,
        'lastDiagnosis': p.last_diagnosis or None,
    } for p in items]
    return result


def patients_booked_by(user, *, q: Optional[str]=None, page: int=1, limit: int=20) -> dict:
    """Patients with appointments booked by ``user``, with the doctors they saw."""
    booked = Appointment.objects.filter(created_by=user)
    qs = _search(Patient.objects.filter(appointments__created_by=user), q).annotate(
        appointment_count=Count('appointments', distinct=True),
        last_appointment=Max('appointments__appointment_date'),
    ).order_by('-last_appointment', '-id')
    result = _page(qs, page, limit)
    items = result.pop('items')

    seen = {}
    rows = (
        booked.filter(patient__in=[p.id for p in items])
        .values_list('patient_id', 'doctor__name').distinct().order_by('doctor__name')
    )
    for patient_id, doctor_name in rows:
        seen.setdefault(patient_id, []).append(doctor_name)

    result['patients'] = [{
        **format_patient(p),
        'totalAppointments': p.appointment_count,
        'lastAppointmentDate': p.last_appointment.isoformat() if p.last_appointment else None,
        'doctorsSeen': seen.get(p.id, []),
    } for p in items]
    return result
