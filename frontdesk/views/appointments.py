"""
Appointment booking endpoints shared by the front desk and admins.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes

from frontdesk.permissions import IsClinicUser
from frontdesk.responses import success
from frontdesk.serializers.appointment import BookingSerializer, StatusSerializer
from frontdesk.services import appointments as appointment_service
from frontdesk.services.appointments import format_appointment
from frontdesk.services.billing import format_invoice, format_payment
from frontdesk.services.doctors import available_doctors
from frontdesk.services.patients import format_patient


@api_view(['POST'])
@permission_classes([IsClinicUser])
def book_appointment(request):
    s = BookingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    outcome = appointment_service.book(
        doctor_id=vd.get('doctorId'),
        date=vd.get('date'),
        time=vd.get('time'),
        patient_id=vd.get('patientId'),
        patient_name=vd.get('patientName'),
        patient_mobile=vd.get('patientMobile'),
        patient_age=vd.get('patientAge'),
        patient_gender=vd.get('patientGender'),
        reason=vd.get('reason'),
        fee=vd.get('fee'),
        created_by=request.user,
    )
    payment, invoice = outcome['payment'], outcome['invoice']
    data = {
        'appointment': format_appointment(outcome.value),
        'patient': format_patient(outcome['patient']),
        'payment': format_payment(payment) if payment else None,
        'invoice': format_invoice(invoice) if invoice else None,
        'warnings': outcome.failures,
    }
    return success(data, 'Appointment booked successfully', status=201)


@api_view(['PATCH'])
@permission_classes([IsClinicUser])
def update_appointment_status(request, appointment_id: int):
    s = StatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = appointment_service.update_status(appointment_id, s.validated_data.get('status'), user=request.user)
    return success(data, 'Appointment status updated')


@api_view(['GET'])
@permission_classes([IsClinicUser])
def doctors_available(request):
    return success(available_doctors(), 'Doctors fetched successfully')
