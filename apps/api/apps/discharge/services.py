"""
Discharge services.

- evaluate_discharge: read-only criteria evaluation
- auto_discharge: applies a positive evaluation (signed token)
- create / review / list discharge requests: human approval workflow
- discharge_completion_stats: completion report

Each write runs in one transaction. Status writes go through
apps.clinical.lifecycle, which performs the guard check and a
compare-and-set on Patient.status.
"""
import logging
from typing import List

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.authz.permissions import ELEVATED_ROLES, STAFF_ROLES
from apps.clinical.lifecycle import Channel, transition_patient_status
from apps.clinical.models import (
    Patient,
    PatientAuditActionChoices,
    PatientStatusChoices,
)
from apps.core.dispatch import send_on_commit
from apps.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidState,
    LifecycleError,
    NotFound,
)
from apps.core.observability import metrics
from apps.core.observability.events import (
    log_consistency_checkpoint,
    log_discharge_evaluated,
    log_discharge_request_event,
    log_domain_event,
)
from apps.core.observability.tracing import trace_span
from apps.discharge.criteria import DischargeCriteriaResult, run_criteria
from apps.discharge.models import DischargeRequest, DischargeRequestStatusChoices
from apps.discharge.signals import discharge_request_created, discharge_request_reviewed
from apps.discharge.tokens import make_evaluation_token, read_evaluation_token

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = (
    DischargeRequestStatusChoices.APPROVED.value,
    DischargeRequestStatusChoices.DENIED.value,
)
_DECISION_VERBS = {
    DischargeRequestStatusChoices.APPROVED.value: 'approve',
    DischargeRequestStatusChoices.DENIED.value: 'deny',
}


def _workflow_setting(name, default=False):
    return getattr(settings, 'DISCHARGE_WORKFLOW', {}).get(name, default)


def _get_patient(patient_id, for_update=False):
    queryset = Patient.objects.select_for_update() if for_update else Patient.objects
    try:
        return queryset.get(pk=patient_id)
    except (Patient.DoesNotExist, ValidationError):
        raise NotFound(f'patient {patient_id} not found')


# ============================================================================
# Evaluation
# ============================================================================

@metrics.track_duration(metrics.discharge_evaluation_duration_seconds)
def evaluate_discharge(patient_id) -> DischargeCriteriaResult:
    """
    Evaluate the discharge criteria for a patient. Performs no writes.

    Positive results carry a signed ``evaluation_token`` for auto_discharge.

    Raises:
        NotFound: patient does not exist
        InvalidState: patient is already discharged
    """
    patient = _get_patient(patient_id)
    if patient.status == PatientStatusChoices.DISCHARGED:
        raise InvalidState('patient is already discharged')

    with trace_span('discharge_evaluate', attributes={'patient_id': str(patient.pk)}):
        result = run_criteria(patient, timezone.now())

    if result.should_discharge:
        result.evaluation_token = make_evaluation_token(result)

    metrics.discharge_evaluations_total.labels(
        eligible=str(result.should_discharge).lower()
    ).inc()
    log_discharge_evaluated(patient.pk, result.should_discharge, list(result.failed_criteria))
    return result


def auto_discharge(patient_id, evaluation_token, actor, actor_role) -> Patient:
    """
    Discharge a patient on the strength of a prior positive evaluation.

    No implicit re-evaluation: the token decides. The patient must still hold
    the status it had when evaluated.

    Raises:
        InvalidState: token missing, invalid, expired or for another patient
        NotFound: patient does not exist
        Conflict: patient already discharged or changed since evaluation
        Forbidden: actor's role may not auto-discharge
    """
    try:
        evaluation = read_evaluation_token(evaluation_token, patient_id)

        with trace_span('auto_discharge', attributes={'patient_id': str(patient_id)}):
            with transaction.atomic():
                patient = _get_patient(patient_id, for_update=True)

                if patient.status == PatientStatusChoices.DISCHARGED:
                    raise Conflict('patient is already discharged')
                if patient.status != evaluation['status']:
                    raise Conflict(
                        f'patient status changed since evaluation '
                        f'({evaluation["status"]} -> {patient.status}); re-evaluate'
                    )

                patient = transition_patient_status(
                    patient,
                    PatientStatusChoices.DISCHARGED,
                    actor=actor,
                    actor_role=actor_role,
                    channel=Channel.AUTO_DISCHARGE,
                    audit_action=PatientAuditActionChoices.AUTO_DISCHARGE,
                    reason=evaluation['reason'],
                    extra_updates={
                        'discharge_date': evaluation['evaluated_at'],
                        'auto_discharged': True,
                        'discharge_reason': evaluation['reason'],
                    },
                )
    except LifecycleError as e:
        metrics.auto_discharge_total.labels(result=e.error_type).inc()
        raise

    metrics.auto_discharge_total.labels(result='success').inc()
    log_domain_event(
        'discharge.auto_discharged',
        entity_type='Patient',
        entity_id=str(patient.pk),
        entity_ids={'patient_id': str(patient.pk)},
        result='success',
        actor_role=actor_role,
        criteria=evaluation['criteria'],
    )
    return patient


# ============================================================================
# Discharge request workflow
# ============================================================================

def create_discharge_request(patient_id, requested_by, requested_by_role, reason) -> DischargeRequest:
    """
    Open a discharge request for a patient.

    Raises:
        Forbidden: requester holds no staff role (front desk, no role)
        ValidationError: blank reason
        NotFound: patient does not exist
        InvalidState: patient discharged, or a pending request already exists
    """
    if requested_by_role not in STAFF_ROLES:
        raise Forbidden(f'role {requested_by_role or "none"} may not request a discharge')

    reason = (reason or '').strip()
    if not reason:
        raise ValidationError({'reason': ['A discharge reason is required.']})

    with transaction.atomic():
        # Row lock serializes concurrent requests for the same patient
        patient = _get_patient(patient_id, for_update=True)

        if patient.status == PatientStatusChoices.DISCHARGED:
            raise InvalidState('patient is already discharged')

        if not _workflow_setting('ALLOW_MULTIPLE_PENDING'):
            if patient.discharge_requests.filter(status=DischargeRequestStatusChoices.PENDING).exists():
                raise InvalidState('patient already has a pending discharge request')

        discharge_request = DischargeRequest.objects.create(
            patient=patient,
            requested_by=requested_by,
            requested_by_role=requested_by_role,
            reason=reason,
        )

        send_on_commit(
            discharge_request_created,
            'discharge_request_created',
            sender=DischargeRequest,
            request_id=str(discharge_request.pk),
            patient_id=str(patient.pk),
            requested_by_id=str(requested_by.pk),
            requested_by_role=requested_by_role,
        )

    metrics.discharge_requests_total.labels(result='created').inc()
    log_discharge_request_event(
        'discharge_request.created', discharge_request, requested_by_role=requested_by_role
    )
    return discharge_request


def _mark_reviewed(request_id, decision, reviewer, reviewer_role, notes, reviewed_at):
    """
    Compare-and-set pending -> decision. Returns the number of rows updated
    (0 when another reviewer got there first).
    """
    return DischargeRequest.objects.filter(
        pk=request_id,
        status=DischargeRequestStatusChoices.PENDING,
    ).update(
        status=decision,
        reviewed_by=reviewer,
        reviewed_by_role=reviewer_role,
        reviewed_at=reviewed_at,
        review_notes=notes or '',
    )


def review_discharge_request(request_id, reviewer, reviewer_role, decision, notes=None) -> DischargeRequest:
    """
    Approve or deny a pending discharge request.

    Approval discharges the patient in the same transaction; if the patient
    write fails the request stays pending.

    Raises:
        ValidationError: decision is not approved/denied
        NotFound: request does not exist
        InvalidState: request already reviewed
        Forbidden: reviewer not admin/supervisor, or reviewing own request
        Conflict: lost the race to another reviewer, or the patient changed
    """
    if decision not in REVIEW_DECISIONS:
        raise ValidationError({'decision': [f'Decision must be one of: {", ".join(REVIEW_DECISIONS)}.']})

    verb = _DECISION_VERBS[decision]

    try:
        with transaction.atomic():
            try:
                discharge_request = DischargeRequest.objects.select_for_update().get(pk=request_id)
            except (DischargeRequest.DoesNotExist, ValidationError):
                raise NotFound(f'discharge request {request_id} not found')

            if discharge_request.status != DischargeRequestStatusChoices.PENDING:
                raise InvalidState(f'cannot {verb}: request already {discharge_request.status}')

            if reviewer_role not in ELEVATED_ROLES:
                raise Forbidden(f'role {reviewer_role or "none"} may not review discharge requests')

            if (
                discharge_request.requested_by_id == reviewer.pk
                and not _workflow_setting('ALLOW_SELF_REVIEW')
            ):
                raise Forbidden(f'cannot {verb}: reviewers may not review their own request')

            reviewed_at = timezone.now()
            if _mark_reviewed(discharge_request.pk, decision, reviewer, reviewer_role, notes, reviewed_at) == 0:
                metrics.discharge_request_conflicts_total.inc()
                raise Conflict(f'cannot {verb}: request was reviewed concurrently')

            if decision == DischargeRequestStatusChoices.APPROVED:
                patient = _get_patient(discharge_request.patient_id, for_update=True)
                if patient.status == PatientStatusChoices.DISCHARGED:
                    raise Conflict('cannot approve: patient is already discharged')

                transition_patient_status(
                    patient,
                    PatientStatusChoices.DISCHARGED,
                    actor=reviewer,
                    actor_role=reviewer_role,
                    channel=Channel.DISCHARGE_REQUEST,
                    audit_action=PatientAuditActionChoices.DISCHARGE_APPROVED,
                    reason=discharge_request.reason,
                    extra_updates={
                        'discharge_date': reviewed_at,
                        'auto_discharged': False,
                        'discharge_reason': discharge_request.reason,
                    },
                )

            discharge_request.refresh_from_db()

            if decision == DischargeRequestStatusChoices.APPROVED:
                log_consistency_checkpoint(
                    'discharge_approval_consistency',
                    entity_ids={
                        'request_id': str(discharge_request.pk),
                        'patient_id': str(discharge_request.patient_id),
                    },
                    checks_passed={
                        'request_approved': discharge_request.status == DischargeRequestStatusChoices.APPROVED,
                        'patient_discharged': Patient.objects.filter(
                            pk=discharge_request.patient_id,
                            status=PatientStatusChoices.DISCHARGED,
                        ).exists(),
                    },
                )

            send_on_commit(
                discharge_request_reviewed,
                'discharge_request_reviewed',
                sender=DischargeRequest,
                request_id=str(discharge_request.pk),
                patient_id=str(discharge_request.patient_id),
                requested_by_id=str(discharge_request.requested_by_id),
                reviewed_by_id=str(reviewer.pk),
                reviewed_by_role=reviewer_role,
                decision=decision,
            )
    except LifecycleError as e:
        metrics.discharge_request_reviews_total.labels(decision=decision, result=e.error_type).inc()
        raise

    metrics.discharge_request_reviews_total.labels(decision=decision, result='success').inc()
    log_discharge_request_event(
        f'discharge_request.{decision}', discharge_request, reviewed_by_role=reviewer_role
    )
    return discharge_request


def close_pending_requests(patient, actor, actor_role, channel) -> int:
    """
    Deny every pending request of a patient who was just discharged.

    Runs inside the discharge transaction (see the patient_discharge_applied
    receiver). The closing actor is recorded as reviewer and the note names
    the discharge channel. Returns the number of requests closed.
    """
    pending = list(
        DischargeRequest.objects.select_for_update()
        .filter(patient=patient, status=DischargeRequestStatusChoices.PENDING)
    )
    if not pending:
        return 0

    closed = DischargeRequest.objects.filter(
        pk__in=[r.pk for r in pending],
        status=DischargeRequestStatusChoices.PENDING,
    ).update(
        status=DischargeRequestStatusChoices.DENIED,
        reviewed_by=actor,
        reviewed_by_role=actor_role,
        reviewed_at=timezone.now(),
        review_notes=f'Closed: patient discharged ({channel})',
    )

    for discharge_request in pending:
        discharge_request.status = DischargeRequestStatusChoices.DENIED
        send_on_commit(
            discharge_request_reviewed,
            'discharge_request_reviewed',
            sender=DischargeRequest,
            request_id=str(discharge_request.pk),
            patient_id=str(patient.pk),
            requested_by_id=str(discharge_request.requested_by_id),
            reviewed_by_id=str(actor.pk),
            reviewed_by_role=actor_role,
            decision=DischargeRequestStatusChoices.DENIED,
        )
        log_discharge_request_event(
            'discharge_request.closed', discharge_request, channel=channel, reviewed_by_role=actor_role
        )

    metrics.discharge_request_reviews_total.labels(
        decision=DischargeRequestStatusChoices.DENIED, result='closed_by_discharge'
    ).inc(closed)
    return closed


def list_discharge_requests(patient_id=None, status=None) -> List[DischargeRequest]:
    """
    Discharge requests, newest first, optionally narrowed to one patient
    and/or one status.

    Raises:
        NotFound: unknown patient
        ValidationError: unknown status value
    """
    if status is not None and status not in DischargeRequestStatusChoices.values:
        raise ValidationError({
            'status': [f'Invalid status. Options: {", ".join(DischargeRequestStatusChoices.values)}']
        })

    queryset = DischargeRequest.objects.select_related('patient', 'requested_by', 'reviewed_by')

    if patient_id is not None:
        _get_patient(patient_id)
        queryset = queryset.filter(patient_id=patient_id)

    if status is not None:
        queryset = queryset.filter(status=status)

    return list(queryset.order_by('-requested_at'))


# ============================================================================
# Reporting
# ============================================================================

def discharge_completion_stats(include_eligible: bool = True) -> dict:
    """
    Treatment completion report.

    Returns:
        {
            'total_patients', 'discharged', 'completion_rate' (percent, 1 dp),
            'breakdown': {'auto_discharged', 'manual_discharged', 'eligible'},
            'pending_requests',
        }
    ``eligible`` counts non-discharged patients whose evaluation is positive.
    """
    total = Patient.objects.count()
    discharged_qs = Patient.objects.filter(status=PatientStatusChoices.DISCHARGED)
    discharged = discharged_qs.count()
    auto_discharged = discharged_qs.filter(auto_discharged=True).count()

    eligible = None
    if include_eligible:
        now = timezone.now()
        eligible = sum(
            1
            for patient in Patient.objects.exclude(status=PatientStatusChoices.DISCHARGED)
            if run_criteria(patient, now).should_discharge
        )

    return {
        'total_patients': total,
        'discharged': discharged,
        'completion_rate': round(discharged / total * 100, 1) if total else 0.0,
        'breakdown': {
            'auto_discharged': auto_discharged,
            'manual_discharged': discharged - auto_discharged,
            'eligible': eligible,
        },
        'pending_requests': DischargeRequest.objects.filter(
            status=DischargeRequestStatusChoices.PENDING
        ).count(),
    }
