"""
Global test fixtures for pytest.

Provides reusable fixtures for API and service testing:
- Users and authenticated API clients by role
- Model instances (Patient, TreatmentGoal, Appointment, ...)
"""
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.authz.models import Role, RoleChoices, User, UserRole
from apps.clinical.models import (
    Appointment,
    AppointmentStatusChoices,
    GoalStatusChoices,
    Patient,
    TreatmentGoal,
)


def make_user(email, role_name=None, **extra):
    """Create a user and, when given, assign ``role_name``."""
    user = User.objects.create_user(
        email=email,
        password='testpass123',
        is_active=True,
        **extra
    )
    if role_name:
        role, _ = Role.objects.get_or_create(name=role_name)
        UserRole.objects.create(user=user, role=role)
    return user


def client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def admin_user(db):
    return make_user('admin@test.com', RoleChoices.ADMIN, first_name='Ada', last_name='Admin', is_staff=True)


@pytest.fixture
def supervisor_user(db):
    return make_user('supervisor@test.com', RoleChoices.SUPERVISOR, first_name='Sam', last_name='Supervisor')


@pytest.fixture
def therapist_user(db):
    return make_user('therapist@test.com', RoleChoices.THERAPIST, first_name='Theo', last_name='Therapist')


@pytest.fixture
def staff_user(db):
    return make_user('staff@test.com', RoleChoices.STAFF, first_name='Stella', last_name='Staff')


@pytest.fixture
def frontdesk_user(db):
    return make_user('frontdesk@test.com', RoleChoices.FRONTDESK, first_name='Fran', last_name='Desk')


@pytest.fixture
def no_role_user(db):
    return make_user('norole@test.com')


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture
def supervisor_client(supervisor_user):
    return client_for(supervisor_user)


@pytest.fixture
def therapist_client(therapist_user):
    return client_for(therapist_user)


@pytest.fixture
def staff_client(staff_user):
    return client_for(staff_user)


@pytest.fixture
def frontdesk_client(frontdesk_user):
    return client_for(frontdesk_user)


@pytest.fixture
def no_role_client(no_role_user):
    return client_for(no_role_user)


# ============================================================================
# Clinical data
# ============================================================================

@pytest.fixture
def patient(db, therapist_user, admin_user):
    """Active patient assigned to the therapist, no goals or appointments."""
    return Patient.objects.create(
        first_name='Jane',
        last_name='Roe',
        intake_date=timezone.localdate() - timedelta(days=120),
        loc='IOP',
        assigned_clinical=therapist_user,
        created_by_user=admin_user,
    )


@pytest.fixture
def other_patient(db, admin_user):
    """Active patient with no assigned clinician."""
    return Patient.objects.create(
        first_name='John',
        last_name='Smith',
        loc='PHP',
        created_by_user=admin_user,
    )


def _add_goal(patient, status=GoalStatusChoices.ACHIEVED, goal='Reduce anxiety episodes'):
    return TreatmentGoal.objects.create(patient=patient, goal=goal, status=status)


def _add_appointment(patient, days_from_now, status=AppointmentStatusChoices.COMPLETED, clinical=None):
    return Appointment.objects.create(
        patient=patient,
        clinical=clinical,
        appointment_date=timezone.now() + timedelta(days=days_from_now),
        status=status,
    )


@pytest.fixture
def add_goal(db):
    """Factory: add_goal(patient, status=achieved, goal=...)"""
    return _add_goal


@pytest.fixture
def add_appointment(db):
    """Factory: add_appointment(patient, days_from_now, status=completed, clinical=None)"""
    return _add_appointment


@pytest.fixture
def eligible_patient(patient, therapist_user):
    """
    Patient meeting every criterion: last appointment 45 days ago,
    nothing upcoming, all goals achieved.
    """
    _add_appointment(patient, -45, clinical=therapist_user)
    _add_goal(patient, goal='Reduce anxiety episodes')
    _add_goal(patient, goal='Return to work')
    return patient


@pytest.fixture
def discharged_patient(db, admin_user):
    return Patient.objects.create(
        first_name='Old',
        last_name='Case',
        status='discharged',
        discharge_date=timezone.now() - timedelta(days=10),
        discharge_reason='Treatment completed',
        created_by_user=admin_user,
    )
