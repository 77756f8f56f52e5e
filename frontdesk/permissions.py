"""
Role based permission classes and the role-to-capability table.
"""
from rest_framework.permissions import BasePermission

from .models import User

ADMIN = User.ROLE_ADMIN
DOCTOR = User.ROLE_DOCTOR
STAFF = User.ROLE_STAFF

# Appointment visibility per role: ``all`` sees every appointment,
# ``own`` only those booked against the caller's doctor profile.
SCOPE_ALL = 'all'
SCOPE_OWN = 'own'
APPOINTMENT_SCOPE = {
    ADMIN: SCOPE_ALL,
    STAFF: SCOPE_ALL,
    DOCTOR: SCOPE_OWN,
}


def appointment_scope(user) -> str | None:
    return APPOINTMENT_SCOPE.get(getattr(user, 'role', None))


class RolePermission(BasePermission):
    """Allow access to authenticated users holding one of ``roles``."""
    roles: frozenset = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        return bool(user and user.is_authenticated and getattr(user, 'role', None) in self.roles)

    @property
    def message(self) -> str:
        return f"Access denied. Required role: {' or '.join(sorted(self.roles))}"


class IsAdmin(RolePermission):
    roles = frozenset({ADMIN})


class IsDoctor(RolePermission):
    roles = frozenset({DOCTOR})


class IsClinicUser(RolePermission):
    """Any of the three clinic roles."""
    roles = frozenset({ADMIN, DOCTOR, STAFF})


class IsStaff(RolePermission):
    """Front desk screens: staff and administrators."""
    roles = frozenset({ADMIN, STAFF})
