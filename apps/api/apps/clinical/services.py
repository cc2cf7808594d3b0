"""
Treatment goal service.

Goal updates feed discharge evaluation: once a goal is marked achieved the
caller is told to re-check discharge eligibility.
"""
import logging
from typing import Any, Dict, Tuple

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.clinical.models import GoalStatusChoices, TreatmentGoal
from apps.core.exceptions import NotFound

logger = logging.getLogger(__name__)

UPDATABLE_GOAL_FIELDS = ('goal', 'status', 'target_date', 'achieved_date', 'notes')


def update_treatment_goal(goal_id, updates: Dict[str, Any]) -> Tuple[TreatmentGoal, bool]:
    """
    Apply ``updates`` to a treatment goal.

    Marking a goal achieved stamps ``achieved_date`` (today) unless one is
    given; moving it away from achieved clears the date.

    Returns:
        (goal, should_check_discharge) where should_check_discharge is True
        when the goal ends up achieved.

    Raises:
        NotFound: goal does not exist
        ValidationError: unknown field or status value
    """
    unknown = set(updates) - set(UPDATABLE_GOAL_FIELDS)
    if unknown:
        raise ValidationError({
            field: ['This field cannot be updated.'] for field in sorted(unknown)
        })

    new_status = updates.get('status')
    if new_status is not None and new_status not in GoalStatusChoices.values:
        raise ValidationError({
            'status': [f'Invalid goal status. Options: {", ".join(GoalStatusChoices.values)}']
        })

    with transaction.atomic():
        try:
            goal = TreatmentGoal.objects.select_for_update().get(pk=goal_id)
        except (TreatmentGoal.DoesNotExist, ValidationError):
            raise NotFound(f'treatment goal {goal_id} not found')

        previous_status = goal.status
        for field, value in updates.items():
            setattr(goal, field, value)

        if goal.status == GoalStatusChoices.ACHIEVED:
            if not goal.achieved_date:
                goal.achieved_date = timezone.localdate()
        elif previous_status == GoalStatusChoices.ACHIEVED:
            goal.achieved_date = None

        goal.save()

    should_check_discharge = goal.status == GoalStatusChoices.ACHIEVED

    logger.info(
        'Treatment goal updated',
        extra={
            'event': 'treatment_goal_updated',
            'goal_id': str(goal.id),
            'patient_id': str(goal.patient_id),
            'from_status': previous_status,
            'to_status': goal.status,
            'should_check_discharge': should_check_discharge,
        }
    )
    return goal, should_check_discharge
