from rest_framework import serializers

from frontdesk.models import ACTIVE_STATUS_CHOICES

from .fields import plain_text

STATUSES = [s for s, _ in ACTIVE_STATUS_CHOICES]


class StaffAccountSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    mobile = serializers.CharField(max_length=20, required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    status = serializers.ChoiceField(choices=STATUSES, required=False, allow_blank=True)

    def validate_name(self, v):
        return plain_text(v)

    def validate_mobile(self, v):
        return plain_text(v)


class DoctorAccountSerializer(StaffAccountSerializer):
    specialization = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    qualification = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    consultationFee = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_specialization(self, v):
        return plain_text(v) if v is not None else None

    def validate_qualification(self, v):
        return plain_text(v) if v is not None else None


class AccountStatusSerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True)


class AccountListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(max_length=64, required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200)


class ClinicSettingsSerializer(serializers.Serializer):
    clinicName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)

    def validate_clinicName(self, v):
        return plain_text(v)

    def validate_address(self, v):
        return plain_text(v)
