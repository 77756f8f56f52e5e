"""
Django admin registrations for the frontdesk models.

Clinic settings, doctor fees and account status are edited here; there
are no API endpoints for them.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Appointment,
    AuditEvent,
    ClinicSettings,
    Consultation,
    ConsultationMedia,
    Doctor,
    Invoice,
    InvoiceSequence,
    Patient,
    Payment,
    Staff,
    User,
)
from .services.doctors import forget_available_doctors


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('email', 'name', 'role', 'status', 'is_superuser')
    list_filter = ('role', 'status')
    search_fields = ('email', 'name', 'username')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Clinic', {'fields': ('role', 'name', 'status')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Clinic', {'fields': ('email', 'role', 'name', 'status')}),
    )


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'specialization', 'consultation_fee', 'status', 'user')
    list_filter = ('status', 'specialization')
    search_fields = ('name', 'mobile', 'user__email')

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        forget_available_doctors()

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        forget_available_doctors()


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'mobile', 'status', 'user')
    list_filter = ('status',)
    search_fields = ('name', 'mobile', 'user__email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'mobile', 'age', 'gender', 'total_visits', 'last_visit')
    list_filter = ('gender',)
    search_fields = ('name', 'mobile')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment_date', 'appointment_time', 'doctor', 'patient', 'fee', 'status')
    list_filter = ('status', 'doctor', 'appointment_date')
    search_fields = ('id', 'patient__name', 'patient__mobile', 'doctor__name')


@admin.register(Consultation)
class ConsultationAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment', 'patient', 'doctor', 'visit_number', 'updated_at')
    search_fields = ('id', 'patient__name', 'patient__mobile', 'diagnosis')


@admin.register(ConsultationMedia)
class ConsultationMediaAdmin(admin.ModelAdmin):
    list_display = ('id', 'consultation', 'file_name', 'file_type', 'size', 'created_at')
    list_filter = ('file_type',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'appointment', 'patient', 'doctor', 'amount', 'payment_date', 'payment_method')
    list_filter = ('payment_method', 'payment_date')
    search_fields = ('id', 'patient__name', 'patient__mobile')


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'appointment', 'patient', 'doctor', 'amount', 'invoice_date')
    search_fields = ('invoice_number', 'patient__name', 'patient__mobile')


admin.site.register(InvoiceSequence)
admin.site.register(ClinicSettings)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'user__email')
