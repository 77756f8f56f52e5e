"""
Patient directory views.

Search by mobile and quick registration are open to every clinic role;
the paged list with edit and delete lives under ``/api/staff/patients``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes

from frontdesk.permissions import IsClinicUser
from frontdesk.responses import paginate, success
from frontdesk.serializers.patient import (
    PatientListQuerySerializer,
    PatientSearchSerializer,
    PatientWriteSerializer,
)
from frontdesk.services import patients as patient_service
from frontdesk.services.datetimes import format_time


def _history_row(c) -> dict:
    return {
        'id': c.id,
        'appointmentId': c.appointment_id,
        'date': c.appointment.appointment_date.isoformat(),
        'time': format_time(c.appointment.appointment_time),
        'doctorName': c.doctor.name,
        'visitNumber': c.visit_number,
        'chiefComplaints': c.chief_complaints,
        'diagnosis': c.diagnosis,
        'treatmentPlan': c.treatment_plan,
        'followUpNotes': c.follow_up_notes,
        'vitals': c.vitals,
    }


@api_view(['GET'])
@permission_classes([IsClinicUser])
def search_patient(request):
    q = PatientSearchSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patient = patient_service.search_by_mobile(q.validated_data['mobile'])
    if patient:
        return success({'found': True, 'patient': patient_service.format_patient(patient)}, 'Patient found')
    return success({'found': False, 'patient': None}, 'Patient not found')


def _create(request):
    s = PatientWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.add_patient(created_by=request.user, **s.validated_data)
    return success(patient_service.format_patient(patient), 'Patient added successfully', status=201)


@api_view(['POST'])
@permission_classes([IsClinicUser])
def create_patient(request):
    return _create(request)


@api_view(['GET'])
@permission_classes([IsClinicUser])
def patient_detail(request, patient_id: int):
    patient = patient_service.get_patient(patient_id)
    history = [_history_row(c) for c in patient_service.patient_history(patient)]
    return success({'patient': patient_service.format_patient(patient), 'history': history},
                   'Patient fetched successfully')


@api_view(['GET', 'POST'])
@permission_classes([IsClinicUser])
def staff_patients(request):
    if request.method == 'POST':
        return _create(request)
    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'))
    items, total = patient_service.list_patients(q=q.validated_data.get('q'), page=page, limit=limit)
    return success({
        'patients': [patient_service.format_patient(p) for p in items],
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }, 'Patients fetched successfully')


@api_view(['PUT', 'DELETE'])
@permission_classes([IsClinicUser])
def staff_patient_detail(request, patient_id: int):
    if request.method == 'DELETE':
        patient_service.delete_patient(patient_id, deleted_by=request.user)
        return success(None, 'Patient deleted successfully')
    s = PatientWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.update_patient(patient_id, updated_by=request.user, **s.validated_data)
    return success(patient_service.format_patient(patient), 'Patient updated successfully')
