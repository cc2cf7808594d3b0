"""
Discharge criteria.

An ordered list of predicates over a patient's record. Every predicate
either passes (its label is reported), fails (discharge is blocked and the
explanation becomes the reason) or does not apply (an unset target).
All applicable predicates must pass.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from django.conf import settings

from apps.clinical.models import (
    AppointmentStatusChoices,
    GoalStatusChoices,
    Patient,
)

ALL_CRITERIA_MET = 'All discharge criteria met'

DEFAULT_INACTIVITY_DAYS = 30
DEFAULT_GOAL_COMPLETION_THRESHOLD = 1.0

# Progress notes that count as a clinician signalling readiness.
READINESS_PHRASES = ('significant improvement', 'goals achieved', 'ready for discharge')
RECENT_SESSION_WINDOW = 3
READINESS_MIN_SESSIONS = 2


@dataclass(frozen=True)
class CriterionOutcome:
    name: str
    # None: predicate does not apply to this patient
    passed: Optional[bool]
    label: str = ''
    explanation: str = ''


@dataclass
class DischargeCriteriaResult:
    """Outcome of one evaluation. Transient, never persisted."""
    patient_id: str
    patient_status: str
    should_discharge: bool
    reason: str
    criteria: Tuple[str, ...]
    evaluated_at: datetime
    failed_criteria: Tuple[str, ...] = ()
    evaluation_token: Optional[str] = None

    def to_dict(self):
        return {
            'patient_id': self.patient_id,
            'patient_status': self.patient_status,
            'should_discharge': self.should_discharge,
            'reason': self.reason,
            'criteria': list(self.criteria),
            'failed_criteria': list(self.failed_criteria),
            'evaluated_at': self.evaluated_at.isoformat(),
            'evaluation_token': self.evaluation_token,
        }


@dataclass
class EvaluationContext:
    patient: Patient
    now: datetime
    inactivity_days: int = DEFAULT_INACTIVITY_DAYS
    goal_completion_threshold: float = DEFAULT_GOAL_COMPLETION_THRESHOLD

    @classmethod
    def from_settings(cls, patient, now):
        config = getattr(settings, 'DISCHARGE_CRITERIA', {})
        return cls(
            patient=patient,
            now=now,
            inactivity_days=config.get('INACTIVITY_DAYS', DEFAULT_INACTIVITY_DAYS),
            goal_completion_threshold=config.get(
                'GOAL_COMPLETION_THRESHOLD', DEFAULT_GOAL_COMPLETION_THRESHOLD
            ),
        )


def no_recent_appointments(ctx):
    cutoff = ctx.now - timedelta(days=ctx.inactivity_days)
    recent = (
        ctx.patient.appointments
        .exclude(status=AppointmentStatusChoices.CANCELLED)
        .filter(appointment_date__gte=cutoff, appointment_date__lte=ctx.now)
        .count()
    )
    if recent:
        return CriterionOutcome(
            'no_recent_appointments',
            False,
            explanation=(
                f'Patient had {recent} appointment(s) in the last {ctx.inactivity_days} days'
            ),
        )
    return CriterionOutcome(
        'no_recent_appointments',
        True,
        label=f'No appointments in the last {ctx.inactivity_days} days',
    )


def no_upcoming_appointments(ctx):
    upcoming = ctx.patient.appointments.filter(
        status=AppointmentStatusChoices.SCHEDULED,
        appointment_date__gt=ctx.now,
    ).count()
    if upcoming:
        return CriterionOutcome(
            'no_upcoming_appointments',
            False,
            explanation=f'Patient has {upcoming} upcoming scheduled appointment(s)',
        )
    return CriterionOutcome(
        'no_upcoming_appointments',
        True,
        label='No upcoming appointments scheduled',
    )


def treatment_goals_complete(ctx):
    goals = ctx.patient.treatment_goals.all()
    total = goals.count()
    if total == 0:
        return CriterionOutcome(
            'treatment_goals_complete',
            False,
            explanation='No treatment goals have been defined',
        )

    achieved = goals.filter(status=GoalStatusChoices.ACHIEVED).count()
    ratio = achieved / total
    if ratio < ctx.goal_completion_threshold:
        return CriterionOutcome(
            'treatment_goals_complete',
            False,
            explanation=f'Only {achieved} of {total} treatment goals achieved',
        )

    if ctx.goal_completion_threshold >= 1.0:
        label = f'All {total} treatment goals achieved'
    else:
        label = f'Achieved {achieved}/{total} treatment goals ({round(ratio * 100)}%)'
    return CriterionOutcome('treatment_goals_complete', True, label=label)


def session_target_met(ctx):
    target = ctx.patient.target_sessions
    if not target:
        return CriterionOutcome('session_target_met', None)

    completed = (
        ctx.patient.treatment_records
        .exclude(session_type='')
        .exclude(session_notes='')
        .exclude(progress='')
        .count()
    )
    if completed < target:
        return CriterionOutcome(
            'session_target_met',
            False,
            explanation=f'Completed {completed} of {target} target sessions',
        )
    return CriterionOutcome(
        'session_target_met',
        True,
        label=f'Completed {completed} of {target} target sessions',
    )


def recent_sessions_show_readiness(ctx):
    recent = list(
        ctx.patient.treatment_records
        .order_by('-session_date')
        .values_list('progress', flat=True)[:RECENT_SESSION_WINDOW]
    )
    if not recent:
        return CriterionOutcome('recent_sessions_show_readiness', None)

    ready = sum(
        1 for progress in recent
        if any(phrase in progress.lower() for phrase in READINESS_PHRASES)
    )
    if ready < READINESS_MIN_SESSIONS:
        return CriterionOutcome(
            'recent_sessions_show_readiness',
            False,
            explanation=(
                f'Only {ready} of the last {len(recent)} session(s) indicate treatment readiness'
            ),
        )
    return CriterionOutcome(
        'recent_sessions_show_readiness',
        True,
        label='Recent sessions indicate treatment readiness',
    )


def target_date_reached(ctx):
    target_date = ctx.patient.target_discharge_date
    if not target_date:
        return CriterionOutcome('target_date_reached', None)

    if ctx.now.date() < target_date:
        return CriterionOutcome(
            'target_date_reached',
            False,
            explanation=f'Target discharge date {target_date.isoformat()} not reached',
        )
    return CriterionOutcome(
        'target_date_reached',
        True,
        label=f'Target discharge date {target_date.isoformat()} reached',
    )


# Evaluation order is part of the contract: the first failure names the reason.
CRITERIA: List[Callable[[EvaluationContext], CriterionOutcome]] = [
    no_recent_appointments,
    no_upcoming_appointments,
    treatment_goals_complete,
    session_target_met,
    recent_sessions_show_readiness,
    target_date_reached,
]


def run_criteria(patient, now, predicates=None):
    """
    Run every predicate against ``patient`` and fold the outcomes into a
    DischargeCriteriaResult (without a token).
    """
    ctx = EvaluationContext.from_settings(patient, now)
    outcomes = [predicate(ctx) for predicate in (predicates or CRITERIA)]

    met = tuple(o.label for o in outcomes if o.passed)
    failed = [o for o in outcomes if o.passed is False]

    return DischargeCriteriaResult(
        patient_id=str(patient.pk),
        patient_status=patient.status,
        should_discharge=not failed,
        reason=failed[0].explanation if failed else ALL_CRITERIA_MET,
        criteria=met,
        evaluated_at=now,
        failed_criteria=tuple(o.name for o in failed),
    )
