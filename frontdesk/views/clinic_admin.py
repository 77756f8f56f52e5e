"""
Administrator screens: dashboard counts, doctor and staff accounts, the
patients each of them has handled, and the clinic letterhead.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes

from frontdesk.exceptions import NotFoundError
from frontdesk.permissions import IsAdmin
from frontdesk.responses import paginate, success
from frontdesk.serializers.admin import (
    AccountListQuerySerializer,
    AccountStatusSerializer,
    ClinicSettingsSerializer,
    DoctorAccountSerializer,
    StaffAccountSerializer,
)
from frontdesk.serializers.patient import PatientListQuerySerializer
from frontdesk.services import accounts
from frontdesk.services import clinic as clinic_service
from frontdesk.services import patients as patient_service
from frontdesk.services.reports import admin_dashboard


def _list_query(request):
    q = AccountListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'), default_limit=10)
    return q.validated_data.get('search') or None, page, limit


def _patients_query(request):
    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'))
    return q.validated_data.get('q') or None, page, limit


def _doctor_fields(vd) -> dict:
    return {
        'name': vd.get('name'),
        'email': vd.get('email'),
        'mobile': vd.get('mobile'),
        'password': vd.get('password') or None,
        'status': vd.get('status') or None,
        'specialization': vd.get('specialization'),
        'qualification': vd.get('qualification'),
        'consultation_fee': vd.get('consultationFee'),
    }


def _staff_fields(vd) -> dict:
    return {
        'name': vd.get('name'),
        'email': vd.get('email'),
        'mobile': vd.get('mobile'),
        'password': vd.get('password') or None,
        'status': vd.get('status') or None,
    }


@api_view(['GET'])
@permission_classes([IsAdmin])
def dashboard(request):
    return success(admin_dashboard(), 'Dashboard stats fetched successfully')


# ---------------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------------

@api_view(['GET', 'POST'])
@permission_classes([IsAdmin])
def doctors(request):
    if request.method == 'GET':
        search, page, limit = _list_query(request)
        return success(accounts.list_doctors(search=search, page=page, limit=limit),
                       'Doctors fetched successfully')

    s = DoctorAccountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = accounts.create_doctor(created_by=request.user, **_doctor_fields(s.validated_data))
    return success(accounts.format_doctor_account(doctor), 'Doctor added successfully', status=201)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAdmin])
def doctor_detail(request, doctor_id: int):
    if request.method == 'DELETE':
        accounts.delete_doctor(doctor_id, deleted_by=request.user)
        return success(None, 'Doctor deleted successfully')

    s = DoctorAccountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = accounts.update_doctor(doctor_id, updated_by=request.user, **_doctor_fields(s.validated_data))
    return success(accounts.format_doctor_account(doctor), 'Doctor updated successfully')


@api_view(['PATCH'])
@permission_classes([IsAdmin])
def doctor_status(request, doctor_id: int):
    s = AccountStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    status = accounts.set_doctor_status(doctor_id, s.validated_data.get('status'), updated_by=request.user)
    return success({'status': status}, f'Doctor status updated to {status}')


@api_view(['GET'])
@permission_classes([IsAdmin])
def doctor_patients(request, doctor_id: int):
    doctor = accounts.get_doctor_account(doctor_id)
    q, page, limit = _patients_query(request)
    data = patient_service.patients_of_doctor(doctor, q=q, page=page, limit=limit)
    data['doctor'] = {'id': doctor.id, 'name': doctor.name, 'specialization': doctor.specialization}
    return success(data, 'Doctor patients fetched successfully')


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

@api_view(['GET', 'POST'])
@permission_classes([IsAdmin])
def staff(request):
    if request.method == 'GET':
        search, page, limit = _list_query(request)
        return success(accounts.list_staff(search=search, page=page, limit=limit),
                       'Staff fetched successfully')

    s = StaffAccountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    member = accounts.create_staff(created_by=request.user, **_staff_fields(s.validated_data))
    return success(accounts.format_staff_account(member), 'Staff added successfully', status=201)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAdmin])
def staff_detail(request, staff_id: int):
    if request.method == 'DELETE':
        accounts.delete_staff(staff_id, deleted_by=request.user)
        return success(None, 'Staff deleted successfully')

    s = StaffAccountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    member = accounts.update_staff(staff_id, updated_by=request.user, **_staff_fields(s.validated_data))
    return success(accounts.format_staff_account(member), 'Staff updated successfully')


@api_view(['PATCH'])
@permission_classes([IsAdmin])
def staff_status(request, staff_id: int):
    s = AccountStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    status = accounts.set_staff_status(staff_id, s.validated_data.get('status'), updated_by=request.user)
    return success({'status': status}, f'Staff status updated to {status}')


@api_view(['GET'])
@permission_classes([IsAdmin])
def staff_patients(request, staff_id: int):
    member = accounts.get_staff_account(staff_id)
    if member.user is None:
        raise NotFoundError('Staff user account not found')
    q, page, limit = _patients_query(request)
    data = patient_service.patients_booked_by(member.user, q=q, page=page, limit=limit)
    data['staff'] = {'id': member.id, 'name': member.name}
    return success(data, 'Staff patients fetched successfully')


# ---------------------------------------------------------------------------
# Clinic settings
# ---------------------------------------------------------------------------

@api_view(['GET', 'PUT'])
@permission_classes([IsAdmin])
def settings(request):
    if request.method == 'GET':
        return success(clinic_service.format_settings(clinic_service.get_settings()),
                       'Clinic settings fetched successfully')

    s = ClinicSettingsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    updated = clinic_service.update_settings(s.validated_data, updated_by=request.user)
    return success(clinic_service.format_settings(updated), 'Clinic settings updated successfully')
