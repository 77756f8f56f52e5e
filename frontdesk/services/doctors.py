from typing import Optional

from django.core.cache import cache

from frontdesk.exceptions import NotFoundError
from frontdesk.models import Doctor, STATUS_ACTIVE
from frontdesk.services.billing import format_amount

AVAILABLE_CACHE_KEY = 'doctors:available'
AVAILABLE_CACHE_TTL = 60


def doctor_for_user(user) -> Optional[Doctor]:
    return Doctor.objects.filter(user_id=getattr(user, 'id', None)).first()


def require_doctor_for_user(user) -> Doctor:
    doctor = doctor_for_user(user)
    if not doctor:
        raise NotFoundError('Doctor profile not found')
    return doctor


def get_doctor(doctor_id) -> Doctor:
    doctor = Doctor.objects.filter(id=doctor_id).first()
    if not doctor:
        raise NotFoundError('Doctor not found')
    return doctor


def format_doctor(d: Doctor) -> dict:
    return {
        'id': d.id,
        'name': d.name,
        'specialization': d.specialization,
        'consultationFee': format_amount(d.consultation_fee),
    }


def available_doctors() -> list[dict]:
    """Active doctors for the booking dropdown, cached briefly."""
    data = cache.get(AVAILABLE_CACHE_KEY)
    if data is None:
        qs = Doctor.objects.filter(status=STATUS_ACTIVE).order_by('name', 'id')
        data = [format_doctor(d) for d in qs]
        cache.set(AVAILABLE_CACHE_KEY, data, AVAILABLE_CACHE_TTL)
    return data


def forget_available_doctors() -> None:
    cache.delete(AVAILABLE_CACHE_KEY)
