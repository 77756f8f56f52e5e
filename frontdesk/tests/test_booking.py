"""
Booking and status change through the HTTP API.

Uses DRF's APITestCase; on_commit broadcasts do not fire inside the
test transaction, so no channel layer is needed.
"""
import datetime
import re
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from rest_framework import status
from rest_framework.test import APITestCase

from frontdesk.models import Appointment, AuditEvent, Doctor, Invoice, Patient, Payment, User
from frontdesk.services.appointments import SLOT_TAKEN

INVOICE_RE = re.compile(r'^INV-\d{6}$')


class BookingAPITests(APITestCase):
    def setUp(self) -> None:
        self.staff = User.objects.create_user(email='desk@clinic.test', password='x', role=User.ROLE_STAFF)
        doctor_user = User.objects.create_user(email='rao@clinic.test', password='x', role=User.ROLE_DOCTOR)
        self.doctor = Doctor.objects.create(user=doctor_user, name='Asha Rao', specialization='General',
                                            consultation_fee=Decimal('500'))
        self.client.force_authenticate(user=self.staff)

    def book(self, **overrides):
        payload = {
            'patientName': 'Ravi Kumar',
            'patientMobile': '98765 43210',
            'patientAge': 41,
            'doctorId': self.doctor.id,
            'date': '2025-03-14',
            'time': '10:30 AM',
            'reason': 'Fever',
            'fee': '500',
        }
        payload.update(overrides)
        return self.client.post('/api/appointments', payload, format='json')

    def test_new_patient_is_registered_and_billed(self):
        r = self.book()
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertTrue(r.data['success'])
        data = r.data['data']
        self.assertEqual(data['appointment']['time'], '10:30:00')
        self.assertEqual(data['appointment']['status'], Appointment.STATUS_WAITING)
        self.assertEqual(data['appointment']['fee'], '500.00')
        self.assertEqual(data['warnings'], [])

        patient = Patient.objects.get(mobile='9876543210')
        self.assertEqual(patient.total_visits, 1)
        self.assertEqual(patient.last_visit, datetime.date(2025, 3, 14))

        payment = Payment.objects.get(appointment_id=data['appointment']['id'])
        self.assertEqual(payment.amount, Decimal('500.00'))
        self.assertEqual(payment.payment_method, 'Cash')
        invoice = Invoice.objects.get(appointment_id=data['appointment']['id'])
        self.assertRegex(invoice.invoice_number, INVOICE_RE)
        self.assertEqual(data['invoice']['invoiceNumber'], invoice.invoice_number)
        self.assertTrue(AuditEvent.objects.filter(action='appointment_book').exists())

    def test_known_mobile_reuses_patient_and_counts_visit(self):
        self.book()
        r = self.book(time='11:00', patientName='Ignored Name')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Patient.objects.count(), 1)
        patient = Patient.objects.get()
        self.assertEqual(patient.name, 'Ravi Kumar')
        self.assertEqual(patient.total_visits, 2)

    def test_taken_slot_is_rejected(self):
        self.book()
        r = self.book(patientMobile='9123456780', patientName='Meera', time='10:30')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data, {'success': False, 'message': SLOT_TAKEN})
        self.assertEqual(Appointment.objects.count(), 1)

    def test_cancelled_slot_can_be_rebooked(self):
        first = self.book().data['data']['appointment']['id']
        r = self.client.patch(f'/api/appointments/{first}/status', {'status': 'Cancelled'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['data'], {'status': 'Cancelled'})

        r = self.book(patientMobile='9123456780', patientName='Meera')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)

        # reviving the cancelled one would double-book the slot
        r = self.client.patch(f'/api/appointments/{first}/status', {'status': 'Waiting'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['message'], SLOT_TAKEN)
        self.assertEqual(Appointment.objects.get(pk=first).status, Appointment.STATUS_CANCELLED)

    def test_zero_fee_creates_no_billing_records(self):
        r = self.book(fee='0')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(r.data['data']['payment'])
        self.assertIsNone(r.data['data']['invoice'])
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(Invoice.objects.exists())

    def test_billing_failure_does_not_undo_booking(self):
        with mock.patch('frontdesk.services.billing.create_payment_and_invoice',
                        side_effect=DatabaseError('invoice table locked')):
            r = self.book()
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(r.data['data']['warnings']), 1)
        self.assertIn('invoice table locked', r.data['data']['warnings'][0])
        self.assertTrue(Appointment.objects.filter(pk=r.data['data']['appointment']['id']).exists())
        self.assertFalse(Payment.objects.exists())

    def test_unexpected_billing_error_keeps_booking(self):
        # the payment row written before the invoice step is rolled back with it
        with mock.patch('frontdesk.services.billing.issue_invoice', side_effect=RuntimeError('printer offline')):
            r = self.book()
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        self.assertIn('printer offline', r.data['data']['warnings'][0])
        self.assertIsNone(r.data['data']['payment'])
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(Appointment.objects.count(), 1)

    def test_new_patient_needs_name_and_mobile(self):
        r = self.book(patientName='')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['message'], 'Patient name and mobile are required for new patients')

    def test_missing_slot_fields(self):
        r = self.book(date='')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['message'], 'Date, time and doctor are required')

    def test_unknown_doctor_and_negative_fee(self):
        r = self.book(doctorId=9999)
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)
        r = self.book(fee='-10')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Appointment.objects.exists())

    def test_invalid_status(self):
        apt = self.book().data['data']['appointment']['id']
        r = self.client.patch(f'/api/appointments/{apt}/status', {'status': 'Done'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['message'], 'Invalid status')
        r = self.client.patch('/api/appointments/9999/status', {'status': 'Completed'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_404_NOT_FOUND)

    def test_available_doctors_lists_active_only(self):
        Doctor.objects.create(name='Retired', status='Inactive')
        Doctor.objects.create(name='No Fee', consultation_fee=None)
        r = self.client.get('/api/appointments/doctors/available')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        names = {d['name']: d for d in r.data['data']}
        self.assertIn('Asha Rao', names)
        self.assertNotIn('Retired', names)
        self.assertEqual(names['No Fee']['consultationFee'], '0.00')
