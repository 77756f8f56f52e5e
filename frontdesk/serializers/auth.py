from rest_framework import serializers

from frontdesk.models import User

from .fields import plain_text


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField()
    password = serializers.CharField()
    role = serializers.ChoiceField(choices=[r for r, _ in User.ROLE_CHOICES], required=False, allow_blank=True)

    def validate_email(self, v):
        v = (v or '').strip().lower()
        if not v:
            raise serializers.ValidationError('Email is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class ProfileSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_name(self, v):
        return plain_text(v)


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    newPassword = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
