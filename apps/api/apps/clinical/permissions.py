"""
Clinical permissions for API endpoints.

BUSINESS RULE: Front desk schedules and registers patients but cannot see
clinical content (treatment goals, session notes).
"""
from rest_framework import permissions
from apps.authz.permissions import ALL_ROLES, STAFF_ROLES, get_user_roles


class PatientPermission(permissions.BasePermission):
    """
    Permission for Patient endpoints based on role.

    - Admin, Supervisor, Therapist, Staff: read, create, update
    - Front desk: read, create (intake)
    - No role: no access
    Status changes go through the dedicated status action and the
    transition guard, never through this permission alone.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = get_user_roles(request.user)

        # Safe methods (GET, HEAD, OPTIONS)
        if request.method in permissions.SAFE_METHODS:
            return bool(user_roles & ALL_ROLES)

        if request.method == 'POST' and getattr(view, 'action', None) == 'create':
            return bool(user_roles & ALL_ROLES)

        return bool(user_roles & STAFF_ROLES)

    def has_object_permission(self, request, view, obj):
        return self.has_permission(request, view)


class ClinicalRecordPermission(permissions.BasePermission):
    """
    Permission for treatment goals and treatment records.

    BUSINESS RULE: Only clinical and elevated staff can read or write
    clinical content. Front desk is explicitly blocked.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return bool(get_user_roles(request.user) & STAFF_ROLES)


class AppointmentPermission(permissions.BasePermission):
    """
    Permission for Appointment endpoints.

    Every clinic role can read and schedule appointments.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(get_user_roles(request.user) & ALL_ROLES)
