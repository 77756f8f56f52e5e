import datetime
from decimal import Decimal
from unittest import mock

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from frontdesk.models import Appointment, Consultation, ConsultationMedia, Patient, Payment
from frontdesk.services import consultations as consultation_service

pytestmark = pytest.mark.django_db

NOTES = {
    'chiefComplaints': 'Fever for three days',
    'diagnosis': 'Viral fever',
    'treatmentPlan': 'Paracetamol, fluids',
    'vitals': {'bp': '120/80', 'pulse': 78},
}


def test_save_twice_updates_in_place(doctor_client, make_appointment, patient):
    apt = make_appointment()
    url = f'/api/doctor/consultation/{apt.id}'

    r = doctor_client.post(url, NOTES, format='json')
    assert r.status_code == 200
    assert r.data['data']['created'] is True
    assert r.data['data']['consultation']['visitNumber'] == 1

    r = doctor_client.post(url, {**NOTES, 'diagnosis': 'Dengue ruled out'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['created'] is False

    consultation = Consultation.objects.get(appointment=apt)
    assert consultation.visit_number == 1
    assert consultation.diagnosis == 'Dengue ruled out'
    assert consultation.vitals == {'bp': '120/80', 'pulse': 78}
    assert Consultation.objects.count() == 1

    apt.refresh_from_db()
    patient.refresh_from_db()
    assert apt.status == Appointment.STATUS_COMPLETED
    assert patient.last_visit is not None
    assert Payment.objects.filter(appointment=apt).count() == 1


def test_visit_numbers_count_across_doctors(doctor_user, make_appointment, other_doctor, admin_user):
    first = make_appointment()
    second = make_appointment(doctor=other_doctor, appointment_date=datetime.date(2025, 3, 20))

    consultation_service.save(first.id, NOTES, doctor_user)
    outcome = consultation_service.save(second.id, NOTES, admin_user)

    assert outcome.value.visit_number == 2
    assert outcome.value.doctor_id == other_doctor.id


def test_history_excludes_current_and_labels_visits(doctor_user, make_appointment):
    first = make_appointment(appointment_date=datetime.date(2025, 3, 1))
    second = make_appointment(appointment_date=datetime.date(2025, 3, 8))
    third = make_appointment(appointment_date=datetime.date(2025, 3, 15))
    for apt in (first, second, third):
        consultation_service.save(apt.id, NOTES, doctor_user)

    data = consultation_service.get_for_appointment(third.id, doctor_user)

    assert [h['date'] for h in data['history']] == ['2025-03-08', '2025-03-01']
    assert [h['visit'] for h in data['history']] == ['Follow-up', 'Initial Consultation']
    assert data['existingConsultation']['visitNumber'] == 3
    assert data['appointment']['time'] == '10:30:00'
    assert data['patient']['mobile'] == '9876543210'


def test_doctor_cannot_open_another_doctors_appointment(doctor_client, make_appointment, other_doctor):
    apt = make_appointment(doctor=other_doctor)
    r = doctor_client.get(f'/api/doctor/consultation/{apt.id}')
    assert r.status_code == 404
    assert r.data == {'success': False, 'message': 'Appointment not found'}


def test_staff_can_open_any_appointment(staff_client, make_appointment, other_doctor):
    apt = make_appointment(doctor=other_doctor)
    r = staff_client.get(f'/api/doctor/consultation/{apt.id}')
    assert r.status_code == 200
    assert r.data['data']['existingConsultation'] is None


def test_doctor_without_profile_gets_not_found(doctor_client, doctor, make_appointment):
    apt = make_appointment()
    doctor.user = None
    doctor.save()
    r = doctor_client.get(f'/api/doctor/consultation/{apt.id}')
    assert r.status_code == 404
    assert r.data['message'] == 'Doctor profile not found'


def test_free_appointment_gets_no_payment(doctor_user, make_appointment):
    apt = make_appointment(fee=Decimal('0'))
    outcome = consultation_service.save(apt.id, NOTES, doctor_user)
    assert outcome.ok
    assert outcome['payment'] is None
    assert not Payment.objects.exists()


def test_existing_payment_is_not_duplicated(doctor_user, make_appointment, patient, doctor):
    apt = make_appointment()
    Payment.objects.create(appointment=apt, patient=patient, doctor=doctor, amount=Decimal('500'),
                           payment_date=apt.appointment_date)
    outcome = consultation_service.save(apt.id, NOTES, doctor_user)
    assert outcome['payment'].appointment_id == apt.id
    assert Payment.objects.filter(appointment=apt).count() == 1


def test_notes_are_stored_as_written(doctor_client, doctor_user, make_appointment):
    apt = make_appointment()
    text = 'BP > 140/90 & HR < 60'
    outcome = consultation_service.save(apt.id, {'diagnosis': f'  {text}  '}, doctor_user)
    assert outcome.value.diagnosis == text

    # saving the returned note again must not change it
    r = doctor_client.post(f'/api/doctor/consultation/{apt.id}', {'diagnosis': outcome.value.diagnosis}, format='json')
    assert r.data['data']['consultation']['diagnosis'] == text
    assert Consultation.objects.get(appointment=apt).diagnosis == text


def test_unexpected_payment_error_keeps_consultation(doctor_user, make_appointment):
    apt = make_appointment()
    with mock.patch('frontdesk.services.billing.ensure_payment', side_effect=RuntimeError('ledger offline')):
        outcome = consultation_service.save(apt.id, NOTES, doctor_user)
    assert outcome.failures == ['Payment not recorded: ledger offline']
    assert outcome['payment'] is None
    apt.refresh_from_db()
    assert apt.status == Appointment.STATUS_COMPLETED
    assert Consultation.objects.filter(appointment=apt).exists()


def test_vitals_json_string_is_decoded(doctor_user, make_appointment):
    apt = make_appointment()
    outcome = consultation_service.save(apt.id, {'vitals': '{"spo2": 98}'}, doctor_user)
    assert outcome.value.vitals == {'spo2': 98}


def test_media_upload_list_delete(doctor_client, doctor_user, make_appointment, settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    apt = make_appointment()
    consultation = consultation_service.save(apt.id, NOTES, doctor_user).value
    url = f'/api/doctor/consultation/{consultation.id}/media'

    pdf = SimpleUploadedFile('report.pdf', b'%PDF-1.4 test', content_type='application/pdf')
    r = doctor_client.post(url, {'file': pdf}, format='multipart')
    assert r.status_code == 201
    assert r.data['data']['fileType'] == ConsultationMedia.TYPE_PDF
    media_id = r.data['data']['id']

    r = doctor_client.get(url)
    assert [m['id'] for m in r.data['data']] == [media_id]

    r = doctor_client.delete(f'{url}/{media_id}')
    assert r.status_code == 200
    assert not ConsultationMedia.objects.exists()


def test_media_upload_rejects_other_types(doctor_client, doctor_user, make_appointment, settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    apt = make_appointment()
    consultation = consultation_service.save(apt.id, NOTES, doctor_user).value
    exe = SimpleUploadedFile('tool.exe', b'MZ', content_type='application/octet-stream')
    r = doctor_client.post(f'/api/doctor/consultation/{consultation.id}/media', {'file': exe}, format='multipart')
    assert r.status_code == 400
    assert r.data['message'] == 'Invalid file type. Only images and PDFs are allowed.'


def test_patient_detail_includes_history(staff_client, doctor_user, make_appointment, patient):
    apt = make_appointment()
    consultation_service.save(apt.id, NOTES, doctor_user)
    r = staff_client.get(f'/api/patients/{patient.id}')
    assert r.status_code == 200
    assert r.data['data']['patient']['id'] == patient.id
    assert r.data['data']['history'][0]['diagnosis'] == 'Viral fever'
    assert Patient.objects.get(pk=patient.pk).last_visit is not None
