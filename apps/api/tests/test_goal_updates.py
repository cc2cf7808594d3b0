"""
Tests for treatment goal updates and the discharge re-check hint.
"""
import uuid
from datetime import date

import pytest
from django.core.exceptions import ValidationError

from apps.clinical.services import update_treatment_goal
from apps.core.exceptions import NotFound


@pytest.mark.django_db
class TestUpdateTreatmentGoal:

    def test_achieving_a_goal_suggests_discharge_check(self, patient, add_goal):
        goal = add_goal(patient, status='in_progress')

        goal, should_check = update_treatment_goal(goal.id, {'status': 'achieved'})

        assert should_check is True
        assert goal.achieved_date is not None

    def test_explicit_achieved_date_kept(self, patient, add_goal):
        goal = add_goal(patient, status='in_progress')

        goal, _ = update_treatment_goal(goal.id, {'status': 'achieved', 'achieved_date': date(2024, 3, 1)})

        assert goal.achieved_date == date(2024, 3, 1)

    def test_other_edits_do_not_suggest_check(self, patient, add_goal):
        goal = add_goal(patient, status='pending')

        goal, should_check = update_treatment_goal(goal.id, {'notes': 'Revisit in a month'})

        assert should_check is False
        assert goal.notes == 'Revisit in a month'

    def test_unknown_field_rejected(self, patient, add_goal):
        goal = add_goal(patient)

        with pytest.raises(ValidationError):
            update_treatment_goal(goal.id, {'patient_id': uuid.uuid4()})

    def test_unknown_status_rejected(self, patient, add_goal):
        goal = add_goal(patient)

        with pytest.raises(ValidationError):
            update_treatment_goal(goal.id, {'status': 'done'})

    def test_missing_goal(self):
        with pytest.raises(NotFound):
            update_treatment_goal(uuid.uuid4(), {'status': 'achieved'})
