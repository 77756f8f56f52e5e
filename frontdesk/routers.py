"""
URL mappings for the clinic API.

Paths mirror the front-end endpoint table; trailing slashes are omitted
deliberately (``APPEND_SLASH = False``).
"""
from django.urls import include, path

from .views import appointments, auth, billing, clinic_admin, doctor, health, patients, staff

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('api/health', health.healthz),
    # Authentication
    path('api/auth/login', auth.login_view),
    path('api/auth/me', auth.me_view),
    path('api/auth/refresh', auth.refresh_view),
    path('api/auth/logout', auth.logout_view),
    path('api/auth/profile', auth.profile_view),
    path('api/auth/change-password', auth.change_password_view),
    # Appointments
    path('api/appointments', appointments.book_appointment),
    path('api/appointments/<int:appointment_id>/status', appointments.update_appointment_status),
    path('api/appointments/doctors/available', appointments.doctors_available),
    # Patients
    path('api/patients', patients.create_patient),
    path('api/patients/search', patients.search_patient),
    path('api/patients/<int:patient_id>', patients.patient_detail),
    # Front desk
    path('api/staff/dashboard', staff.dashboard),
    path('api/staff/appointments', staff.appointments),
    path('api/staff/patients', patients.staff_patients),
    path('api/staff/patients/<int:patient_id>', patients.staff_patient_detail),
    path('api/staff/doctors', staff.doctors),
    path('api/staff/settings', staff.clinic_settings),
    # Doctor workspace
    path('api/doctor/me', doctor.me),
    path('api/doctor/dashboard', doctor.dashboard),
    path('api/doctor/appointments/today', doctor.appointments_today),
    path('api/doctor/appointments', doctor.appointments),
    path('api/doctor/payments', doctor.payments),
    path('api/doctor/patients', doctor.patients),
    path('api/doctor/consultations/recent', doctor.recent_consultations),
    path('api/doctor/consultation/<int:appointment_id>', doctor.consultation),
    path('api/doctor/consultation/<int:consultation_id>/media', doctor.consultation_media),
    path('api/doctor/consultation/<int:consultation_id>/media/<int:media_id>', doctor.consultation_media_delete),
    # Billing
    path('api/payments', billing.payments),
    path('api/payments/list', billing.payment_invoice_list),
    path('api/payments/range', billing.payments_range),
    path('api/payments/sync', billing.payments_sync),
    path('api/invoices', billing.invoices),
    path('api/invoices/generate', billing.invoice_generate),
    path('api/invoices/<int:invoice_id>', billing.invoice_detail),
    # Administration
    path('api/admin/dashboard/stats', clinic_admin.dashboard),
    path('api/admin/doctors', clinic_admin.doctors),
    path('api/admin/doctors/<int:doctor_id>', clinic_admin.doctor_detail),
    path('api/admin/doctors/<int:doctor_id>/status', clinic_admin.doctor_status),
    path('api/admin/doctors/<int:doctor_id>/patients', clinic_admin.doctor_patients),
    path('api/admin/staff', clinic_admin.staff),
    path('api/admin/staff/<int:staff_id>', clinic_admin.staff_detail),
    path('api/admin/staff/<int:staff_id>/status', clinic_admin.staff_status),
    path('api/admin/staff/<int:staff_id>/patients', clinic_admin.staff_patients),
    path('api/admin/settings', clinic_admin.settings),
]
