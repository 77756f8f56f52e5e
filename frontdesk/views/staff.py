"""
Front desk screens: dashboard, the appointment list, the doctor roster and
the clinic letterhead.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes

from frontdesk.permissions import IsStaff
from frontdesk.responses import paginate, success
from frontdesk.serializers.appointment import AppointmentListQuerySerializer
from frontdesk.services.accounts import all_doctors
from frontdesk.services.appointments import list_appointments
from frontdesk.services.clinic import current_settings, format_settings
from frontdesk.services.reports import staff_dashboard


@api_view(['GET'])
@permission_classes([IsStaff])
def dashboard(request):
    return success(staff_dashboard(), 'Dashboard data fetched successfully')


@api_view(['GET'])
@permission_classes([IsStaff])
def appointments(request):
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page, limit, _ = paginate(vd.get('page'), vd.get('limit'))
    data = list_appointments(
        request.user,
        date=vd.get('date') or None,
        status=vd.get('status'),
        doctor_id=vd.get('doctorId'),
        page=page,
        limit=limit,
    )
    return success(data, 'Appointments fetched successfully')


@api_view(['GET'])
@permission_classes([IsStaff])
def doctors(request):
    return success(all_doctors(), 'Doctors fetched successfully')


@api_view(['GET'])
@permission_classes([IsStaff])
def clinic_settings(request):
    return success(format_settings(current_settings()), 'Clinic settings fetched successfully')
