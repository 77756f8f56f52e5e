"""
Doctor workspace: own profile and dashboard, appointment lists, payments,
patients, and the consultation screen with its media attachments.

Consultation endpoints also accept ADMIN and STAFF callers; for them the
appointment lookup is unscoped.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser

from frontdesk.permissions import IsClinicUser, IsDoctor
from frontdesk.responses import paginate, success
from frontdesk.serializers.appointment import AppointmentListQuerySerializer, TodayQuerySerializer
from frontdesk.serializers.billing import PageQuerySerializer
from frontdesk.serializers.consultation import ConsultationSerializer, MediaUploadSerializer
from frontdesk.serializers.patient import PatientListQuerySerializer
from frontdesk.services import consultations as consultation_service
from frontdesk.services import patients as patient_service
from frontdesk.services.appointments import list_appointments, todays_appointments
from frontdesk.services.billing import doctor_payments, format_amount, format_payment
from frontdesk.services.doctors import require_doctor_for_user
from frontdesk.services.reports import doctor_dashboard


@api_view(['GET'])
@permission_classes([IsDoctor])
def me(request):
    doctor = require_doctor_for_user(request.user)
    return success({
        'id': doctor.id,
        'name': doctor.name,
        'email': request.user.email,
        'specialization': doctor.specialization,
        'qualification': doctor.qualification,
        'mobile': doctor.mobile,
        'consultationFee': format_amount(doctor.consultation_fee),
        'status': doctor.status,
    }, 'Profile fetched successfully')


@api_view(['GET'])
@permission_classes([IsDoctor])
def dashboard(request):
    return success(doctor_dashboard(request.user), 'Dashboard data fetched successfully')


@api_view(['GET'])
@permission_classes([IsClinicUser])
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
@permission_classes([IsDoctor])
def appointments_today(request):
    q = TodayQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page, limit, _ = paginate(vd.get('page'), vd.get('limit'))
    data = todays_appointments(request.user, q=vd.get('search') or None, status=vd.get('status'),
                               page=page, limit=limit)
    return success(data, "Today's appointments fetched successfully")


@api_view(['GET'])
@permission_classes([IsDoctor])
def payments(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'))
    data = doctor_payments(require_doctor_for_user(request.user), page=page, limit=limit)
    return success(data, 'Payments fetched successfully')


@api_view(['GET'])
@permission_classes([IsDoctor])
def patients(request):
    doctor = require_doctor_for_user(request.user)
    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'))
    data = patient_service.patients_of_doctor(doctor, q=q.validated_data.get('q') or None, page=page, limit=limit)
    return success(data, 'Patients fetched successfully')


@api_view(['GET'])
@permission_classes([IsClinicUser])
def recent_consultations(request):
    return success(consultation_service.recent_consultations(request.user),
                   'Recent consultations fetched successfully')


@api_view(['GET', 'POST'])
@permission_classes([IsClinicUser])
def consultation(request, appointment_id: int):
    if request.method == 'GET':
        data = consultation_service.get_for_appointment(appointment_id, request.user)
        return success(data, 'Consultation data fetched successfully')

    s = ConsultationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    outcome = consultation_service.save(appointment_id, s.validated_data, request.user)
    payment = outcome['payment']
    return success({
        'consultation': consultation_service.format_consultation(outcome.value),
        'created': outcome['created'],
        'payment': format_payment(payment) if payment else None,
        'warnings': outcome.failures,
    }, 'Consultation saved successfully')


@api_view(['GET', 'POST'])
@permission_classes([IsClinicUser])
@parser_classes([MultiPartParser, FormParser])
def consultation_media(request, consultation_id: int):
    if request.method == 'GET':
        return success(consultation_service.list_media(consultation_id, request.user), 'Media fetched successfully')
    s = MediaUploadSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    media = consultation_service.upload_media(consultation_id, s.validated_data['file'], request.user)
    return success(consultation_service.format_media(media), 'File uploaded successfully', status=201)


@api_view(['DELETE'])
@permission_classes([IsClinicUser])
def consultation_media_delete(request, consultation_id: int, media_id: int):
    consultation_service.delete_media(consultation_id, media_id, request.user)
    return success(None, 'File deleted successfully')
