"""
Tests for the discharge criteria evaluator.

Tests cover:
1. Eligible patient: every label reported, token issued
2. Each predicate blocking discharge on its own
3. Configurable inactivity window and goal threshold
4. Discharged / missing patients
5. Evaluation performs no writes
"""
import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from apps.clinical.models import (
    AppointmentStatusChoices,
    GoalStatusChoices,
    Patient,
    PatientAuditLog,
    SessionTypeChoices,
    TreatmentRecord,
)
from apps.core.exceptions import InvalidState, NotFound
from apps.discharge.criteria import ALL_CRITERIA_MET
from apps.discharge.services import evaluate_discharge


NO_RECENT_LABEL = 'No appointments in the last 30 days'
NO_UPCOMING_LABEL = 'No upcoming appointments scheduled'


def _record(patient, complete=True, progress='Significant improvement in mood', days_ago=60):
    return TreatmentRecord.objects.create(
        patient=patient,
        session_date=timezone.now() - timedelta(days=days_ago),
        session_type=SessionTypeChoices.INDIVIDUAL if complete else '',
        session_notes='Discussed coping strategies',
        progress=progress if complete else '',
    )


@pytest.mark.django_db
class TestEligiblePatient:

    def test_all_criteria_met(self, eligible_patient):
        """Last appointment 45 days ago + all goals achieved => eligible."""
        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is True
        assert result.reason == ALL_CRITERIA_MET
        assert NO_RECENT_LABEL in result.criteria
        assert NO_UPCOMING_LABEL in result.criteria
        assert 'All 2 treatment goals achieved' in result.criteria
        assert result.failed_criteria == ()
        assert result.evaluation_token

    def test_inactive_patient_can_be_evaluated(self, eligible_patient):
        Patient.objects.filter(pk=eligible_patient.pk).update(status='inactive')

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is True
        assert result.patient_status == 'inactive'

    def test_evaluation_writes_nothing(self, eligible_patient):
        before = Patient.objects.get(pk=eligible_patient.pk)

        evaluate_discharge(eligible_patient.id)

        after = Patient.objects.get(pk=eligible_patient.pk)
        assert after.status == before.status == 'active'
        assert after.updated_at == before.updated_at
        assert after.discharge_date is None
        assert PatientAuditLog.objects.count() == 0

    def test_cancelled_recent_appointment_is_ignored(self, eligible_patient, add_appointment):
        add_appointment(eligible_patient, -5, status=AppointmentStatusChoices.CANCELLED)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is True


@pytest.mark.django_db
class TestBlockingCriteria:
    """Any failing predicate => not eligible and its label absent."""

    def test_recent_appointment_blocks(self, eligible_patient, add_appointment):
        add_appointment(eligible_patient, -10)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert NO_RECENT_LABEL not in result.criteria
        assert 'last 30 days' in result.reason
        assert result.failed_criteria == ('no_recent_appointments',)
        assert result.evaluation_token is None

    def test_upcoming_appointment_blocks(self, eligible_patient, add_appointment):
        add_appointment(eligible_patient, 60, status=AppointmentStatusChoices.SCHEDULED)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert NO_UPCOMING_LABEL not in result.criteria
        assert 'upcoming' in result.reason
        assert NO_RECENT_LABEL in result.criteria

    def test_no_goals_blocks(self, patient, add_appointment):
        add_appointment(patient, -45)

        result = evaluate_discharge(patient.id)

        assert result.should_discharge is False
        assert result.reason == 'No treatment goals have been defined'
        assert 'treatment_goals_complete' in result.failed_criteria

    def test_unachieved_goal_blocks(self, eligible_patient, add_goal):
        add_goal(eligible_patient, status=GoalStatusChoices.IN_PROGRESS, goal='Sleep hygiene')

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert result.reason == 'Only 2 of 3 treatment goals achieved'
        assert not any('treatment goals achieved' in label for label in result.criteria)

    def test_first_failure_names_the_reason(self, patient, add_appointment):
        add_appointment(patient, -3)
        add_appointment(patient, 7, status=AppointmentStatusChoices.SCHEDULED)

        result = evaluate_discharge(patient.id)

        assert result.failed_criteria == (
            'no_recent_appointments',
            'no_upcoming_appointments',
            'treatment_goals_complete',
        )
        assert 'last 30 days' in result.reason
        assert result.criteria == ()

    def test_session_target_not_met_blocks(self, eligible_patient):
        eligible_patient.target_sessions = 3
        eligible_patient.save()
        _record(eligible_patient)
        _record(eligible_patient)
        _record(eligible_patient, complete=False)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert result.reason == 'Completed 2 of 3 target sessions'

    def test_session_target_met(self, eligible_patient):
        eligible_patient.target_sessions = 2
        eligible_patient.save()
        _record(eligible_patient)
        _record(eligible_patient)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is True
        assert 'Completed 2 of 2 target sessions' in result.criteria

    def test_recent_sessions_show_readiness(self, eligible_patient):
        _record(eligible_patient, progress='Still struggling', days_ago=80)
        _record(eligible_patient, progress='Ready for discharge per client', days_ago=70)
        _record(eligible_patient, progress='Improving', days_ago=60)
        _record(eligible_patient, progress='Goals achieved', days_ago=50)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is True
        assert 'Recent sessions indicate treatment readiness' in result.criteria

    def test_recent_sessions_without_readiness_block(self, eligible_patient):
        # the session 80 days ago falls outside the last three
        _record(eligible_patient, progress='Significant improvement', days_ago=80)
        _record(eligible_patient, progress='Ready for discharge', days_ago=70)
        _record(eligible_patient, progress='Improving slowly', days_ago=60)
        _record(eligible_patient, progress='Setback after job loss', days_ago=50)

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert result.failed_criteria == ('recent_sessions_show_readiness',)
        assert result.reason == 'Only 1 of the last 3 session(s) indicate treatment readiness'
        assert 'Recent sessions indicate treatment readiness' not in result.criteria

    def test_readiness_not_applicable_without_sessions(self, eligible_patient):
        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is True
        assert 'Recent sessions indicate treatment readiness' not in result.criteria

    def test_future_target_date_blocks(self, eligible_patient):
        eligible_patient.target_discharge_date = timezone.localdate() + timedelta(days=14)
        eligible_patient.save()

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert result.failed_criteria == ('target_date_reached',)


@pytest.mark.django_db
class TestConfiguration:

    def test_inactivity_window_from_settings(self, settings, eligible_patient):
        settings.DISCHARGE_CRITERIA = {
            'INACTIVITY_DAYS': 60,
            'GOAL_COMPLETION_THRESHOLD': 1.0,
            'EVALUATION_TOKEN_MAX_AGE': 900,
        }

        result = evaluate_discharge(eligible_patient.id)

        assert result.should_discharge is False
        assert 'last 60 days' in result.reason

    def test_partial_goal_threshold(self, settings, patient, add_appointment, add_goal):
        settings.DISCHARGE_CRITERIA = {
            'INACTIVITY_DAYS': 30,
            'GOAL_COMPLETION_THRESHOLD': 0.5,
            'EVALUATION_TOKEN_MAX_AGE': 900,
        }
        add_appointment(patient, -45)
        add_goal(patient, goal='Reduce anxiety episodes')
        add_goal(patient, status=GoalStatusChoices.NOT_ACHIEVED, goal='Return to work')

        result = evaluate_discharge(patient.id)

        assert result.should_discharge is True
        assert 'Achieved 1/2 treatment goals (50%)' in result.criteria


@pytest.mark.django_db
class TestEvaluationErrors:

    def test_discharged_patient_raises_invalid_state(self, discharged_patient):
        with pytest.raises(InvalidState):
            evaluate_discharge(discharged_patient.id)

    def test_unknown_patient_raises_not_found(self):
        with pytest.raises(NotFound):
            evaluate_discharge(uuid.uuid4())

    def test_malformed_id_raises_not_found(self):
        with pytest.raises(NotFound):
            evaluate_discharge('not-a-uuid')
