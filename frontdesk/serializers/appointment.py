from rest_framework import serializers

from frontdesk.models import Appointment

from .patient import GENDERS


class BookingSerializer(serializers.Serializer):
    """Booking payload; an unknown patient is registered from the patient* fields."""
    patientId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    patientName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    patientMobile = serializers.CharField(max_length=32, required=False, allow_blank=True)
    patientAge = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    patientGender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)
    doctorId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    date = serializers.CharField(required=False, allow_blank=True)
    time = serializers.CharField(required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    fee = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class StatusSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)


class AppointmentListQuerySerializer(serializers.Serializer):
    date = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[s for s, _ in Appointment.STATUS_CHOICES], required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False)


class TodayQuerySerializer(serializers.Serializer):
    search = serializers.CharField(max_length=64, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[s for s, _ in Appointment.STATUS_CHOICES], required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False)
