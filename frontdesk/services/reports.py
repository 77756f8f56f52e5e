"""Read-only dashboard aggregates for the front desk and doctors."""
import datetime

from django.db.models import Count, Max, OuterRef, Subquery, Sum
from django.utils import timezone

from frontdesk.models import STATUS_ACTIVE, Appointment, Doctor, Patient, Payment, Staff
from frontdesk.services.billing import format_amount
from frontdesk.services.clinic import DEFAULT_CLINIC_NAME, current_settings
from frontdesk.services.datetimes import format_time
from frontdesk.services.doctors import require_doctor_for_user

RECENT_LIMIT = 8
TREND_DAYS = 7


def _creator(obj) -> dict:
    creator = obj.created_by
    return {
        'createdByName': creator.display_name() if creator else None,
        'createdByRole': creator.role if creator else None,
    }


def _sum(qs, field) -> str:
    return format_amount(qs.aggregate(total=Sum(field))['total'])


def staff_dashboard() -> dict:
    today = timezone.localdate()
    appointments = Appointment.objects.all()

    trend_start = today - datetime.timedelta(days=TREND_DAYS - 1)
    trends = (
        appointments.filter(appointment_date__gte=trend_start)
        .values('appointment_date')
        .annotate(count=Count('id'))
        .order_by('appointment_date')
    )

    recent_appointments = (
        appointments.filter(appointment_date=today)
        .select_related('patient', 'doctor', 'created_by')
        .order_by('-appointment_time', '-id')[:RECENT_LIMIT]
    )

    patient_appointments = Appointment.objects.filter(patient=OuterRef('pk'))
    recent_patients = (
        Patient.objects.select_related('created_by')
        .annotate(
            appointment_count=Subquery(
                patient_appointments.order_by().values('patient').annotate(n=Count('id')).values('n')[:1]
            ),
            last_appointment=Subquery(
                patient_appointments.order_by().values('patient')
                .annotate(last=Max('appointment_date')).values('last')[:1]
            ),
        )
        .order_by('-created_at', '-id')[:RECENT_LIMIT]
    )

    return {
        'stats': {
            'todayTotal': appointments.filter(appointment_date=today).count(),
            'waiting': appointments.filter(status=Appointment.STATUS_WAITING).count(),
            'completed': appointments.filter(status=Appointment.STATUS_COMPLETED).count(),
            'totalPatients': Patient.objects.count(),
            'totalAppointmentsAllTime': appointments.count(),
            'totalEarnings': _sum(appointments.filter(status=Appointment.STATUS_COMPLETED), 'fee'),
        },
        'appointmentTrends': [
            {'date': row['appointment_date'].isoformat(), 'count': row['count']} for row in trends
        ],
        'recentAppointments': [{
            'id': a.id,
            'time': format_time(a.appointment_time),
            'status': a.status,
            'date': a.appointment_date.isoformat(),
            'patient': a.patient.name,
            'doctor': a.doctor.name,
            **_creator(a),
        } for a in recent_appointments],
        'recentPatients': [{
            'id': p.id,
            'name': p.name,
            'mobile': p.mobile,
            'age': p.age,
            'gender': p.gender,
            'registeredDate': p.registered_date.isoformat() if p.registered_date else None,
            'appointmentCount': p.appointment_count or 0,
            'lastAppointmentDate': p.last_appointment.isoformat() if p.last_appointment else None,
            **_creator(p),
        } for p in recent_patients],
    }


def doctor_dashboard(user) -> dict:
    doctor = require_doctor_for_user(user)
    today = timezone.localdate()
    own = Appointment.objects.filter(doctor=doctor)

    # Waiting sorts ahead of Completed/Cancelled, then by time.
    upcoming = (
        own.filter(appointment_date=today)
        .select_related('patient')
        .order_by('-status', 'appointment_time')[:RECENT_LIMIT]
    )

    return {
        'stats': {
            'totalEarnings': _sum(
                Payment.objects.filter(doctor=doctor, status=Payment.STATUS_COMPLETED), 'amount'
            ),
            'totalAppointments': own.count(),
            'pending': own.filter(status=Appointment.STATUS_WAITING).count(),
            'completed': own.filter(status=Appointment.STATUS_COMPLETED).count(),
            'todayTotal': own.filter(appointment_date=today).count(),
            'globalToday': Appointment.objects.filter(appointment_date=today).count(),
        },
        'nextAppointments': [{
            'id': a.id,
            'time': format_time(a.appointment_time),
            'reason': a.reason,
            'status': a.status,
            'patientId': a.patient_id,
            'patient': a.patient.name,
            'age': a.patient.age,
            'gender': a.patient.gender,
        } for a in upcoming],
    }


def admin_dashboard() -> dict:
    settings = current_settings()
    return {
        'totalDoctors': Doctor.objects.filter(status=STATUS_ACTIVE).count(),
        'totalStaff': Staff.objects.filter(status=STATUS_ACTIVE).count(),
        'totalPatients': Patient.objects.count(),
        'totalAppointments': Appointment.objects.count(),
        'totalPayments': _sum(Appointment.objects.filter(status=Appointment.STATUS_COMPLETED), 'fee'),
        'clinicStatus': 'Active',
        'clinicName': (settings.clinic_name if settings else '') or DEFAULT_CLINIC_NAME,
    }
