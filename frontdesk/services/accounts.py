"""
Doctor and staff accounts.

Every doctor or staff profile created here comes with its login ``User``;
name, email and status are written to both rows together so the profile
and the credential never disagree.  Deleting a profile deletes its login.
"""
import logging
from typing import Optional

from django.db import transaction
from django.db.models import ProtectedError, Q
from rest_framework.exceptions import AuthenticationFailed

from frontdesk.exceptions import ConflictError, NotFoundError, ValidationError
from frontdesk.models import ACTIVE_STATUS_CHOICES, STATUS_ACTIVE, Doctor, Staff, User
from frontdesk.services.audit import log_action
from frontdesk.services.billing import format_amount, parse_amount
from frontdesk.services.doctors import forget_available_doctors

logger = logging.getLogger(__name__)

VALID_STATUSES = {value for value, _ in ACTIVE_STATUS_CHOICES}
MIN_PASSWORD_LENGTH = 6
DEFAULT_SPECIALIZATION = 'General Medicine'


def _status(value, default=STATUS_ACTIVE) -> str:
    if not value:
        return default
    if value not in VALID_STATUSES:
        raise ValidationError('Status must be either "Active" or "Inactive"')
    return value


def _email(value) -> str:
    email = (value or '').strip().lower()
    if not email:
        raise ValidationError('Email is required')
    return email


def _check_password(password) -> str:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long')
    return password


def _ensure_email_free(email, *, exclude_user_id=None) -> None:
    qs = User.objects.filter(Q(email__iexact=email) | Q(username__iexact=email))
    if exclude_user_id:
        qs = qs.exclude(id=exclude_user_id)
    if qs.exists():
        raise ConflictError('Email already exists')


def _create_login(*, email, password, name, role, status) -> User:
    _ensure_email_free(email)
    return User.objects.create_user(
        email=email, password=_check_password(password), name=name, role=role, status=status,
    )


def _sync_login(user: Optional[User], *, email, name, status, password=None) -> None:
    if user is None:
        return
    _ensure_email_free(email, exclude_user_id=user.id)
    user.email = email
    user.username = email
    user.name = name
    user.status = status
    if password:
        user.set_password(_check_password(password))
    user.save()


def _page(qs, page, limit):
    total = qs.count()
    start = (page - 1) * limit
    return list(qs[start:start + limit]), total


# ---------------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------------

def format_doctor_account(d: Doctor) -> dict:
    return {
        'id': d.id,
        'userId': d.user_id,
        'name': d.name,
        'email': d.user.email if d.user else None,
        'mobile': d.mobile,
        'specialization': d.specialization,
        'qualification': d.qualification,
        'consultationFee': format_amount(d.consultation_fee),
        'status': d.status,
        'createdAt': d.created_at.isoformat() if d.created_at else None,
    }


def get_doctor_account(doctor_id) -> Doctor:
    doctor = Doctor.objects.select_related('user').filter(id=doctor_id).first()
    if not doctor:
        raise NotFoundError('Doctor not found')
    return doctor


def list_doctors(*, search: Optional[str]=None, page: int=1, limit: int=10) -> dict:
    qs = Doctor.objects.select_related('user').order_by('-created_at', '-id')
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(mobile__icontains=search) | Q(user__email__icontains=search))
    items, total = _page(qs, page, limit)
    return {
        'doctors': [format_doctor_account(d) for d in items],
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }


def all_doctors() -> list[dict]:
    """Every doctor, active or not, for pick lists and filters."""
    return [
        {
            'id': d.id,
            'name': d.name,
            'specialization': d.specialization,
            'consultationFee': format_amount(d.consultation_fee),
            'status': d.status,
        }
        for d in Doctor.objects.order_by('name', 'id')
    ]


@transaction.atomic
def create_doctor(*, name, email, password, mobile, specialization=None, qualification=None,
                  consultation_fee=None, status=None, created_by=None) -> Doctor:
    if not name or not mobile or not email or not password:
        raise ValidationError('All fields are required')
    email = _email(email)
    status = _status(status)
    fee = parse_amount(consultation_fee, 'Consultation fee') if consultation_fee not in (None, '') else 0
    user = _create_login(email=email, password=password, name=name, role=User.ROLE_DOCTOR, status=status)
    doctor = Doctor.objects.create(
        user=user,
        name=name,
        mobile=mobile,
        specialization=specialization or DEFAULT_SPECIALIZATION,
        qualification=qualification or '',
        consultation_fee=fee,
        status=status,
    )
    forget_available_doctors()
    log_action(user=created_by, action='doctor_create', object_type='doctor', object_id=doctor.id)
    logger.info('created doctor %s with login %s', doctor.id, user.id)
    return doctor


@transaction.atomic
def update_doctor(doctor_id, *, name, email, mobile, specialization=None, qualification=None,
                  consultation_fee=None, password=None, status=None, updated_by=None) -> Doctor:
    if not name or not mobile or not email:
        raise ValidationError('Name, mobile, and email are required')
    doctor = get_doctor_account(doctor_id)
    email = _email(email)
    status = _status(status, default=doctor.status)

    doctor.name = name
    doctor.mobile = mobile
    if specialization is not None:
        doctor.specialization = specialization
    if qualification is not None:
        doctor.qualification = qualification
    if consultation_fee not in (None, ''):
        doctor.consultation_fee = parse_amount(consultation_fee, 'Consultation fee')
    doctor.status = status
    doctor.save()
    _sync_login(doctor.user, email=email, name=name, status=status, password=password)

    forget_available_doctors()
    log_action(user=updated_by, action='doctor_update', object_type='doctor', object_id=doctor.id)
    return doctor


@transaction.atomic
def delete_doctor(doctor_id, *, deleted_by=None) -> None:
    doctor = get_doctor_account(doctor_id)
    user = doctor.user
    try:
        with transaction.atomic():
            doctor.delete()
    except ProtectedError:
        raise ConflictError('Cannot delete a doctor with appointments or billing records. Set the doctor inactive instead.')
    if user is not None:
        user.delete()
    forget_available_doctors()
    log_action(user=deleted_by, action='doctor_delete', object_type='doctor', object_id=int(doctor_id))


@transaction.atomic
def set_doctor_status(doctor_id, status, *, updated_by=None) -> str:
    if not status:
        raise ValidationError('Status is required')
    status = _status(status)
    doctor = get_doctor_account(doctor_id)
    doctor.status = status
    doctor.save(update_fields=['status'])
    if doctor.user is not None:
        doctor.user.status = status
        doctor.user.save(update_fields=['status'])
    forget_available_doctors()
    log_action(user=updated_by, action='doctor_status', object_type='doctor', object_id=doctor.id,
               detail={'status': status})
    return status


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

def format_staff_account(s: Staff) -> dict:
    return {
        'id': s.id,
        'userId': s.user_id,
        'name': s.name,
        'email': s.user.email if s.user else None,
        'mobile': s.mobile,
        'status': s.status,
        'createdAt': s.created_at.isoformat() if s.created_at else None,
    }


def get_staff_account(staff_id) -> Staff:
    staff = Staff.objects.select_related('user').filter(id=staff_id).first()
    if not staff:
        raise NotFoundError('Staff not found')
    return staff


def list_staff(*, search: Optional[str]=None, page: int=1, limit: int=10) -> dict:
    qs = Staff.objects.select_related('user').order_by('-created_at', '-id')
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(mobile__icontains=search) | Q(user__email__icontains=search))
    items, total = _page(qs, page, limit)
    return {
        'staff': [format_staff_account(s) for s in items],
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }


@transaction.atomic
def create_staff(*, name, email, password, mobile, status=None, created_by=None) -> Staff:
    if not name or not mobile or not email or not password:
        raise ValidationError('All fields are required')
    email = _email(email)
    status = _status(status)
    user = _create_login(email=email, password=password, name=name, role=User.ROLE_STAFF, status=status)
    staff = Staff.objects.create(user=user, name=name, mobile=mobile, status=status)
    log_action(user=created_by, action='staff_create', object_type='staff', object_id=staff.id)
    return staff


@transaction.atomic
def update_staff(staff_id, *, name, email, mobile, password=None, status=None, updated_by=None) -> Staff:
    if not name or not mobile or not email:
        raise ValidationError('Name, mobile, and email are required')
    staff = get_staff_account(staff_id)
    email = _email(email)
    status = _status(status, default=staff.status)
    staff.name = name
    staff.mobile = mobile
    staff.status = status
    staff.save()
    _sync_login(staff.user, email=email, name=name, status=status, password=password)
    log_action(user=updated_by, action='staff_update', object_type='staff', object_id=staff.id)
    return staff


@transaction.atomic
def delete_staff(staff_id, *, deleted_by=None) -> None:
    staff = get_staff_account(staff_id)
    user = staff.user
    staff.delete()
    if user is not None:
        user.delete()
    log_action(user=deleted_by, action='staff_delete', object_type='staff', object_id=int(staff_id))


@transaction.atomic
def set_staff_status(staff_id, status, *, updated_by=None) -> str:
    if not status:
        raise ValidationError('Status is required')
    status = _status(status)
    staff = get_staff_account(staff_id)
    staff.status = status
    staff.save(update_fields=['status'])
    if staff.user is not None:
        staff.user.status = status
        staff.user.save(update_fields=['status'])
    log_action(user=updated_by, action='staff_status', object_type='staff', object_id=staff.id,
               detail={'status': status})
    return status


# ---------------------------------------------------------------------------
# Own account
# ---------------------------------------------------------------------------

def update_profile(user: User, *, name) -> User:
    name = (name or '').strip()
    if not name:
        raise ValidationError('Name is required')
    user.name = name
    user.save(update_fields=['name'])
    log_action(user=user, action='profile_update', object_type='user', object_id=user.id)
    return user


def change_password(user: User, *, current_password, new_password) -> None:
    if not current_password or not new_password:
        raise ValidationError('Current password and new password are required')
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'New password must be at least {MIN_PASSWORD_LENGTH} characters long')
    if not user.check_password(current_password):
        raise AuthenticationFailed('Current password is incorrect')
    user.set_password(new_password)
    user.save(update_fields=['password'])
    log_action(user=user, action='password_change', object_type='user', object_id=user.id)
