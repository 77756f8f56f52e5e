from rest_framework import serializers

from .fields import plain_text

GENDERS = ['Male', 'Female', 'Other']


class PatientWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    mobile = serializers.CharField(max_length=32)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=GENDERS, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_name(self, v):
        v = plain_text(v)
        if not v:
            raise serializers.ValidationError('Name is required')
        return v

    def validate_address(self, v):
        return plain_text(v) or None


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200)


class PatientSearchSerializer(serializers.Serializer):
    mobile = serializers.CharField(max_length=32)
