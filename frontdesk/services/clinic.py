"""Clinic letterhead settings (one row)."""
from typing import Optional

from frontdesk.exceptions import ValidationError
from frontdesk.models import ClinicSettings, User
from frontdesk.services.audit import log_action

DEFAULT_CLINIC_NAME = 'My Clinic'

FIELD_MAP = {
    'clinicName': 'clinic_name',
    'address': 'address',
    'phone': 'phone',
    'email': 'email',
}


def current_settings() -> Optional[ClinicSettings]:
    return ClinicSettings.objects.order_by('id').first()


def get_settings() -> ClinicSettings:
    """Return the settings row, creating the default one on first use."""
    settings = current_settings()
    if settings is None:
        settings = ClinicSettings.objects.create(clinic_name=DEFAULT_CLINIC_NAME)
    return settings


def update_settings(changes: dict, *, updated_by: Optional[User]=None) -> ClinicSettings:
    fields = {FIELD_MAP[k]: v for k, v in changes.items() if k in FIELD_MAP}
    if not fields:
        raise ValidationError('No fields to update')
    settings = get_settings()
    for attr, value in fields.items():
        setattr(settings, attr, value)
    settings.save(update_fields=list(fields))
    log_action(user=updated_by, action='clinic_settings_update', object_type='clinic_settings',
               object_id=settings.id, detail={'fields': sorted(fields)})
    return settings


def format_settings(s: Optional[ClinicSettings]) -> dict:
    if s is None:
        return {}
    return {
        'id': s.id,
        'clinicName': s.clinic_name,
        'address': s.address,
        'phone': s.phone,
        'email': s.email,
    }
