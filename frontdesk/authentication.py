"""
Bearer JWT authentication.

Subclasses simplejwt's ``JWTAuthentication`` so that an account switched
to ``Inactive`` is refused with 403 rather than treated as an unknown
credential.  Kept separate from the views to avoid circular imports when
the REST framework loads authentication classes.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework_simplejwt.authentication import JWTAuthentication as BaseJWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken
from rest_framework_simplejwt.settings import api_settings


class JWTAuthentication(BaseJWTAuthentication):

    def get_user(self, validated_token):
        try:
            user_id = validated_token[api_settings.USER_ID_CLAIM]
        except KeyError:
            raise InvalidToken('Token contained no recognizable user identification')

        user = get_user_model().objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
        if user is None:
            raise AuthenticationFailed('User not found.', code='user_not_found')
        if not user.is_clinic_active:
            raise PermissionDenied('Account is inactive. Contact admin.')
        return user
