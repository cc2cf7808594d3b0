"""
Role resolution and shared role-based permissions.

Views resolve the acting role once per request with ``resolve_actor_role``
and pass it explicitly into service calls; the services never look the
role up themselves.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices


# Highest privilege first
ROLE_RANK = [
    RoleChoices.ADMIN.value,
    RoleChoices.SUPERVISOR.value,
    RoleChoices.THERAPIST.value,
    RoleChoices.STAFF.value,
    RoleChoices.FRONTDESK.value,
]

ELEVATED_ROLES = frozenset({RoleChoices.ADMIN.value, RoleChoices.SUPERVISOR.value})
CLINICAL_ROLES = frozenset({RoleChoices.THERAPIST.value, RoleChoices.STAFF.value})
STAFF_ROLES = ELEVATED_ROLES | CLINICAL_ROLES
ALL_ROLES = STAFF_ROLES | {RoleChoices.FRONTDESK.value}


def get_user_roles(user):
    """Return the set of role names held by ``user`` (empty for anonymous users)."""
    if not user or not user.is_authenticated:
        return set()
    return set(user.user_roles.values_list('role__name', flat=True))


def resolve_actor_role(user):
    """
    Return the user's highest-ranked role, or None when the user holds none.
    """
    user_roles = get_user_roles(user)
    for role in ROLE_RANK:
        if role in user_roles:
            return role
    return None


class HasAnyRole(permissions.BasePermission):
    """
    Any authenticated user holding at least one clinic role.

    Front desk included: read access to patient lists and appointments.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(get_user_roles(request.user) & ALL_ROLES)


class IsStaffRole(permissions.BasePermission):
    """
    Clinical and elevated staff (admin, supervisor, therapist, staff).

    Front desk may read (SAFE_METHODS) but never write.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = get_user_roles(request.user)

        if request.method in permissions.SAFE_METHODS:
            return bool(user_roles & ALL_ROLES)

        return bool(user_roles & STAFF_ROLES)


class IsElevatedRole(permissions.BasePermission):
    """Admin or supervisor only."""

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(get_user_roles(request.user) & ELEVATED_ROLES)
