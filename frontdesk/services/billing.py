"""
Payments and invoices derived from fee-bearing appointments.

A payment is unique per appointment (database constraint); invoice
numbers come from the ``InvoiceSequence`` table so two concurrent
requests can never format the same number.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Exists, OuterRef, Subquery, Sum

from frontdesk.exceptions import ConflictError, NotFoundError, ValidationError
from frontdesk.models import Appointment, Invoice, InvoiceSequence, Payment
from frontdesk.services.audit import log_action
from frontdesk.services.clinic import current_settings, format_settings
from frontdesk.services.datetimes import format_time

logger = logging.getLogger(__name__)


def parse_amount(value, label='Amount') -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{label} must be a non-negative number")
    return amount.quantize(Decimal('0.01'))


def format_amount(value) -> str:
    """Render money with two decimals whatever the database returned."""
    return str(Decimal(str(value or 0)).quantize(Decimal('0.01')))


def next_invoice_number() -> str:
    seq = InvoiceSequence.objects.create()
    prefix = getattr(settings, 'INVOICE_PREFIX', 'INV-')
    width = getattr(settings, 'INVOICE_NUMBER_WIDTH', 6)
    return f"{prefix}{seq.pk:0{width}d}"


def ensure_payment(appointment: Appointment, *, created_by=None, amount: Optional[Decimal]=None,
                   method: Optional[str]=None, notes: Optional[str]=None) -> tuple[Payment, bool]:
    """Return the appointment's payment, creating it if none exists yet."""
    existing = Payment.objects.filter(appointment=appointment).first()
    if existing:
        return existing, False
    try:
        with transaction.atomic():
            payment = Payment.objects.create(
                appointment=appointment,
                patient_id=appointment.patient_id,
                doctor_id=appointment.doctor_id,
                amount=appointment.fee if amount is None else amount,
                payment_date=appointment.appointment_date,
                payment_method=method or getattr(settings, 'DEFAULT_PAYMENT_METHOD', 'Cash'),
                status=Payment.STATUS_COMPLETED,
                notes=notes or None,
                created_by=created_by,
            )
    except IntegrityError:
        # Lost the race to a concurrent writer; theirs is the payment.
        return Payment.objects.get(appointment=appointment), False
    return payment, True


def issue_invoice(appointment: Appointment) -> Invoice:
    return Invoice.objects.create(
        invoice_number=next_invoice_number(),
        appointment=appointment,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        amount=appointment.fee,
        invoice_date=appointment.appointment_date,
        status=Invoice.STATUS_GENERATED,
    )


def create_payment_and_invoice(appointment: Appointment, *, created_by=None) -> tuple[Payment, Invoice]:
    with transaction.atomic():
        payment, _ = ensure_payment(appointment, created_by=created_by)
        invoice = Invoice.objects.filter(appointment=appointment).first() or issue_invoice(appointment)
    return payment, invoice


def _get_appointment(appointment_id) -> Appointment:
    appointment = Appointment.objects.select_related('patient', 'doctor').filter(id=appointment_id).first()
    if not appointment:
        raise NotFoundError('Appointment not found')
    return appointment


def record_payment(appointment_id, *, amount=None, method='Cash', notes=None, created_by=None) -> Payment:
    """Record the payment for an appointment; amount defaults to its fee."""
    appointment = _get_appointment(appointment_id)
    value = appointment.fee if amount in (None, '') else parse_amount(amount)
    payment, created = ensure_payment(
        appointment, created_by=created_by, amount=value, method=method, notes=notes,
    )
    if not created:
        raise ConflictError('Payment already recorded for this appointment')
    log_action(user=created_by, action='payment_record', object_type='payment', object_id=payment.id,
               detail={'appointmentId': appointment.id, 'amount': str(payment.amount)})
    return payment


def generate_invoice(appointment_id) -> tuple[Invoice, bool]:
    """Invoice an appointment at its fee snapshot; an existing invoice is reused."""
    appointment = _get_appointment(appointment_id)
    with transaction.atomic():
        existing = Invoice.objects.filter(appointment=appointment).first()
        if existing:
            return existing, False
        invoice = issue_invoice(appointment)
    log_action(user=None, action='invoice_generate', object_type='invoice', object_id=invoice.id,
               detail={'appointmentId': appointment.id, 'invoiceNumber': invoice.invoice_number})
    return invoice, True


def sync_from_appointments(*, created_by=None) -> int:
    """Create the missing payments of completed, fee-bearing appointments."""
    has_payment = Payment.objects.filter(appointment=OuterRef('pk'))
    pending = (
        Appointment.objects.filter(status=Appointment.STATUS_COMPLETED, fee__gt=0)
        .exclude(Exists(has_payment))
        .order_by('id')
    )
    synced = 0
    for appointment in pending:
        _, created = ensure_payment(appointment, created_by=created_by)
        if created:
            synced += 1
    if synced:
        logger.info('synced %d payments from completed appointments', synced)
    log_action(user=created_by, action='payment_sync', object_type='payment', detail={'synced': synced})
    return synced


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def format_payment(py: Payment) -> dict:
    apt = py.appointment
    return {
        'id': py.id,
        'appointmentId': py.appointment_id,
        'patientId': py.patient_id,
        'patientName': py.patient.name,
        'patientMobile': py.patient.mobile,
        'doctorId': py.doctor_id,
        'doctorName': py.doctor.name,
        'specialization': py.doctor.specialization,
        'amount': format_amount(py.amount),
        'paymentDate': py.payment_date.isoformat(),
        'paymentMethod': py.payment_method,
        'status': py.status,
        'notes': py.notes,
        'appointmentDate': apt.appointment_date.isoformat() if apt else None,
        'appointmentTime': format_time(apt.appointment_time) if apt else None,
        'reason': apt.reason if apt else None,
    }


def format_invoice(inv: Invoice) -> dict:
    apt = inv.appointment
    return {
        'id': inv.id,
        'invoiceNumber': inv.invoice_number,
        'appointmentId': inv.appointment_id,
        'patientId': inv.patient_id,
        'patientName': inv.patient.name,
        'patientMobile': inv.patient.mobile,
        'doctorId': inv.doctor_id,
        'doctorName': inv.doctor.name,
        'specialization': inv.doctor.specialization,
        'amount': format_amount(inv.amount),
        'invoiceDate': inv.invoice_date.isoformat(),
        'status': inv.status,
        'appointmentDate': apt.appointment_date.isoformat() if apt else None,
        'appointmentTime': format_time(apt.appointment_time) if apt else None,
        'reason': apt.reason if apt else None,
    }


def _payments():
    return Payment.objects.select_related('patient', 'doctor', 'appointment').order_by('-payment_date', '-created_at', '-id')


def _total(qs) -> str:
    return format_amount(qs.aggregate(total=Sum('amount'))['total'])


def list_payments(*, page: int=1, limit: int=20) -> dict:
    qs = _payments()
    total = qs.count()
    start = (page - 1) * limit
    return {
        'payments': [format_payment(py) for py in qs[start:start + limit]],
        'totalAmount': _total(Payment.objects.all()),
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }


def payments_in_range(start_date, end_date) -> dict:
    qs = _payments().filter(payment_date__range=(start_date, end_date))
    return {
        'payments': [format_payment(py) for py in qs],
        'totalAmount': _total(qs),
    }


def payment_invoice_list(*, page: int=1, limit: int=20) -> dict:
    """Payments paired with the invoice issued for the same appointment."""
    invoices = Invoice.objects.filter(appointment_id=OuterRef('appointment_id')).order_by('id')
    qs = _payments().annotate(
        invoice_number=Subquery(invoices.values('invoice_number')[:1]),
        invoice_id=Subquery(invoices.values('id')[:1]),
    )
    total = qs.count()
    start = (page - 1) * limit
    records = []
    for py in qs[start:start + limit]:
        row = format_payment(py)
        row['invoiceNumber'] = py.invoice_number
        row['invoiceId'] = py.invoice_id
        records.append(row)
    return {
        'records': records,
        'totalAmount': _total(Payment.objects.all()),
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }


def list_invoices() -> dict:
    qs = Invoice.objects.select_related('patient', 'doctor', 'appointment').order_by('-invoice_date', '-created_at', '-id')
    return {
        'invoices': [format_invoice(inv) for inv in qs],
        'totalAmount': _total(Invoice.objects.all()),
    }


def invoice_detail(invoice_id) -> dict:
    inv = Invoice.objects.select_related('patient', 'doctor', 'appointment').filter(id=invoice_id).first()
    if not inv:
        raise NotFoundError('Invoice not found')
    data = format_invoice(inv)
    data.update({
        'patientAge': inv.patient.age,
        'patientGender': inv.patient.gender,
        'patientAddress': inv.patient.address,
        'qualification': inv.doctor.qualification,
    })
    return {'invoice': data, 'clinic': format_settings(current_settings())}


def doctor_payments(doctor, *, page: int=1, limit: int=20) -> dict:
    qs = _payments().filter(doctor=doctor)
    total = qs.count()
    start = (page - 1) * limit
    return {
        'payments': [format_payment(py) for py in qs[start:start + limit]],
        'totalAmount': _total(qs),
        'total': total,
        'page': page,
        'totalPages': -(-total // limit),
    }
