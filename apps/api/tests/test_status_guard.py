"""
Tests for the patient status transition guard and manual status changes.
"""
import uuid

import pytest
from django.core.exceptions import ValidationError

from apps.clinical.lifecycle import (
    Channel,
    check_status_transition,
    remove_from_program,
    set_patient_status,
)
from apps.clinical.models import Patient, PatientAuditLog
from apps.core.exceptions import Forbidden, InvalidTransition, NotFound


class TestCheckStatusTransition:
    """Pure guard, no database."""

    @pytest.mark.parametrize('role', ['admin', 'supervisor'])
    @pytest.mark.parametrize('current,target', [
        ('active', 'inactive'),
        ('inactive', 'active'),
        ('active', 'discharged'),
        ('inactive', 'discharged'),
    ])
    def test_elevated_roles_manual(self, role, current, target):
        assert check_status_transition(current, target, role, Channel.MANUAL) is None

    @pytest.mark.parametrize('role', ['therapist', 'staff'])
    def test_clinical_roles_on_assigned_patients(self, role):
        assert check_status_transition('active', 'inactive', role, Channel.MANUAL, is_assigned=True) is None

    @pytest.mark.parametrize('role', ['therapist', 'staff'])
    def test_clinical_roles_on_unassigned_patients(self, role):
        with pytest.raises(Forbidden):
            check_status_transition('active', 'inactive', role, Channel.MANUAL, is_assigned=False)

    @pytest.mark.parametrize('role', ['therapist', 'staff', 'frontdesk', None])
    def test_manual_discharge_needs_elevated_role(self, role):
        with pytest.raises(Forbidden):
            check_status_transition('active', 'discharged', role, Channel.MANUAL, is_assigned=True)

    def test_frontdesk_cannot_change_status(self):
        with pytest.raises(Forbidden):
            check_status_transition('active', 'inactive', 'frontdesk', Channel.MANUAL)

    @pytest.mark.parametrize('role,allowed', [
        ('admin', True),
        ('supervisor', True),
        ('therapist', True),
        ('staff', False),
        ('frontdesk', False),
    ])
    def test_auto_discharge_roles(self, role, allowed):
        if allowed:
            assert check_status_transition('active', 'discharged', role, Channel.AUTO_DISCHARGE) is None
        else:
            with pytest.raises(Forbidden):
                check_status_transition('active', 'discharged', role, Channel.AUTO_DISCHARGE)

    @pytest.mark.parametrize('target', ['active', 'inactive', 'discharged'])
    def test_discharged_is_terminal(self, target):
        with pytest.raises(InvalidTransition):
            check_status_transition('discharged', target, 'admin', Channel.MANUAL)

    def test_same_status_is_not_a_transition(self):
        with pytest.raises(InvalidTransition):
            check_status_transition('active', 'active', 'admin', Channel.MANUAL)

    def test_activity_change_only_manual(self):
        with pytest.raises(InvalidTransition):
            check_status_transition('active', 'inactive', 'admin', Channel.DISCHARGE_REQUEST)

    def test_unknown_status(self):
        with pytest.raises(InvalidTransition):
            check_status_transition('active', 'archived', 'admin', Channel.MANUAL)

    def test_unknown_channel(self):
        with pytest.raises(InvalidTransition):
            check_status_transition('active', 'discharged', 'admin', 'import')


@pytest.mark.django_db
class TestSetPatientStatus:

    def test_frontdesk_cannot_discharge(self, patient, frontdesk_user):
        with pytest.raises(Forbidden):
            set_patient_status(patient.id, 'discharged', frontdesk_user, 'frontdesk')

        assert Patient.objects.get(pk=patient.pk).status == 'active'

    def test_admin_discharges(self, patient, admin_user):
        updated = set_patient_status(patient.id, 'discharged', admin_user, 'admin')

        assert updated.status == 'discharged'
        assert updated.discharge_date is not None
        assert updated.auto_discharged is False
        assert updated.discharge_reason == 'Discharged manually by admin'

        audit = PatientAuditLog.objects.get(patient=patient)
        assert audit.action == 'status_change'
        assert audit.metadata == {
            'from_status': 'active',
            'to_status': 'discharged',
            'channel': 'manual',
            'actor_role': 'admin',
            'reason': 'Discharged manually by admin',
        }

    def test_assigned_therapist_deactivates(self, patient, therapist_user):
        updated = set_patient_status(patient.id, 'inactive', therapist_user, 'therapist')

        assert updated.status == 'inactive'
        assert updated.discharge_date is None

    def test_unassigned_staff_forbidden(self, other_patient, staff_user):
        with pytest.raises(Forbidden):
            set_patient_status(other_patient.id, 'inactive', staff_user, 'staff')

    def test_reopen_discharged_patient(self, discharged_patient, admin_user):
        with pytest.raises(InvalidTransition):
            set_patient_status(discharged_patient.id, 'active', admin_user, 'admin')

    def test_unknown_patient(self, admin_user):
        with pytest.raises(NotFound):
            set_patient_status(uuid.uuid4(), 'inactive', admin_user, 'admin')

    def test_rejected_change_writes_no_audit(self, patient, staff_user):
        with pytest.raises(Forbidden):
            set_patient_status(patient.id, 'discharged', staff_user, 'staff')

        assert PatientAuditLog.objects.count() == 0


@pytest.mark.django_db
class TestRemoveFromProgram:

    def test_clears_loc(self, patient, other_patient, supervisor_user):
        updated = remove_from_program([patient.id, other_patient.id], supervisor_user, 'supervisor')

        assert updated == 2
        assert set(Patient.objects.values_list('loc', flat=True)) == {''}
        assert Patient.objects.get(pk=patient.pk).status == 'active'
        assert PatientAuditLog.objects.filter(action='remove_from_program').count() == 2

    def test_skips_patients_without_program(self, patient, other_patient, admin_user):
        Patient.objects.filter(pk=other_patient.pk).update(loc='')

        assert remove_from_program([patient.id, other_patient.id], admin_user, 'admin') == 1

    def test_therapist_forbidden(self, patient, therapist_user):
        with pytest.raises(Forbidden):
            remove_from_program([patient.id], therapist_user, 'therapist')

    def test_empty_list(self, admin_user):
        with pytest.raises(ValidationError):
            remove_from_program([], admin_user, 'admin')
