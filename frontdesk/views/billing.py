"""
Payments and invoices.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework.decorators import api_view, permission_classes

from frontdesk.permissions import IsClinicUser
from frontdesk.responses import paginate, success
from frontdesk.serializers.billing import (
    DateRangeQuerySerializer,
    InvoiceGenerateSerializer,
    PageQuerySerializer,
    PaymentCreateSerializer,
)
from frontdesk.services import billing


@api_view(['GET', 'POST'])
@permission_classes([IsClinicUser])
def payments(request):
    if request.method == 'POST':
        s = PaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data
        payment = billing.record_payment(
            vd['appointmentId'],
            amount=vd.get('amount'),
            method=vd.get('paymentMethod') or settings.DEFAULT_PAYMENT_METHOD,
            notes=vd.get('notes'),
            created_by=request.user,
        )
        return success(billing.format_payment(payment), 'Payment recorded successfully', status=201)

    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'))
    return success(billing.list_payments(page=page, limit=limit), 'Payments fetched successfully')


@api_view(['GET'])
@permission_classes([IsClinicUser])
def payment_invoice_list(request):
    q = PageQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    page, limit, _ = paginate(q.validated_data.get('page'), q.validated_data.get('limit'))
    return success(billing.payment_invoice_list(page=page, limit=limit), 'Payments fetched successfully')


@api_view(['GET'])
@permission_classes([IsClinicUser])
def payments_range(request):
    q = DateRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = billing.payments_in_range(q.validated_data['startDate'], q.validated_data['endDate'])
    return success(data, 'Payments fetched successfully')


@api_view(['POST'])
@permission_classes([IsClinicUser])
def payments_sync(request):
    synced = billing.sync_from_appointments(created_by=request.user)
    return success({'synced': synced}, f"Synced {synced} payments")


@api_view(['GET'])
@permission_classes([IsClinicUser])
def invoices(request):
    return success(billing.list_invoices(), 'Invoices fetched successfully')


@api_view(['POST'])
@permission_classes([IsClinicUser])
def invoice_generate(request):
    s = InvoiceGenerateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    invoice, created = billing.generate_invoice(s.validated_data['appointmentId'])
    message = 'Invoice generated successfully' if created else 'Invoice already exists'
    return success(billing.format_invoice(invoice), message, status=201 if created else 200)


@api_view(['GET'])
@permission_classes([IsClinicUser])
def invoice_detail(request, invoice_id: int):
    return success(billing.invoice_detail(invoice_id), 'Invoice fetched successfully')
