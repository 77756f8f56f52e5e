"""
Login, current user, token refresh and logout, plus the caller's own
profile name and password.

Tokens are simplejwt access/refresh pairs; the access token is returned as
``token`` for the front-end and sent back as ``Authorization: Bearer``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from frontdesk.models import Doctor, Staff, User
from frontdesk.responses import success
from frontdesk.serializers.auth import (
    ChangePasswordSerializer,
    LoginSerializer,
    ProfileSerializer,
    RefreshSerializer,
)
from frontdesk.services import accounts
from frontdesk.services.audit import log_action

INVALID_CREDENTIALS = 'Invalid credentials'


def _profile_fields(user: User) -> dict:
    if user.role == User.ROLE_DOCTOR:
        doctor = Doctor.objects.filter(user=user).first()
        if doctor:
            return {
                'doctorId': doctor.id,
                'specialization': doctor.specialization,
                'qualification': doctor.qualification,
                'mobile': doctor.mobile,
            }
    elif user.role == User.ROLE_STAFF:
        staff = Staff.objects.filter(user=user).first()
        if staff:
            return {'staffId': staff.id, 'mobile': staff.mobile}
    return {}


def user_payload(user: User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'name': user.display_name(),
        'role': user.role,
        'status': user.status,
        **_profile_fields(user),
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Email/password login.  ``role`` is optional; when given it must match
    the account's role.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    ip = request.META.get('REMOTE_ADDR')

    user = User.objects.filter(email__iexact=vd['email']).first()
    role = vd.get('role')
    if not user or (role and user.role != role):
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': vd['email'], 'ip': ip})
        raise AuthenticationFailed(INVALID_CREDENTIALS)
    if not user.is_clinic_active:
        raise PermissionDenied('Account is inactive. Contact admin.')
    if not user.check_password(vd['password']):
        log_action(user=None, action='login', object_type='user', object_id=user.id,
                   detail={'result': 'fail', 'ip': ip})
        raise AuthenticationFailed(INVALID_CREDENTIALS)

    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    return success({
        'token': str(refresh.access_token),
        'refresh': str(refresh),
        'user': user_payload(user),
    }, 'Login successful')

# ScopedRateThrottle reads throttle_scope from the wrapped view class
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return success(user_payload(request.user), 'User fetched successfully')


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Exchange a refresh token for a new access token."""
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    ts = TokenRefreshSerializer(data={'refresh': s.validated_data['refresh']})
    try:
        ts.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    data = {'token': ts.validated_data['access']}
    if 'refresh' in ts.validated_data:
        data['refresh'] = ts.validated_data['refresh']
    return success(data, 'Token refreshed')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            raise InvalidToken(e.args[0])
        if str(token.get(api_settings.USER_ID_CLAIM)) != str(request.user.pk):
            raise PermissionDenied('Token does not belong to the current user')
        token.blacklist()
        count = 1
    else:
        for outstanding in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=outstanding)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return success({'blacklisted': count}, 'Logged out')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    s = ProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = accounts.update_profile(request.user, name=s.validated_data.get('name'))
    return success(user_payload(user), 'Profile updated successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    s = ChangePasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.change_password(
        request.user,
        current_password=s.validated_data.get('currentPassword'),
        new_password=s.validated_data.get('newPassword'),
    )
    return success(None, 'Password changed successfully')
