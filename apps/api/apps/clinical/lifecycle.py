"""
Patient status transition guard.

Every write to Patient.status goes through ``transition_patient_status``:
the manual status endpoint, auto-discharge and discharge request approval.
The guard itself (``check_status_transition``) is a pure function of the
current status, the target status, the acting role and the channel.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.authz.permissions import CLINICAL_ROLES, ELEVATED_ROLES
from apps.clinical.models import (
    Patient,
    PatientAuditActionChoices,
    PatientStatusChoices,
    log_patient_audit,
)
from apps.clinical.signals import (
    patient_discharge_applied,
    patient_discharged,
    patient_status_changed,
)
from apps.core.dispatch import send_on_commit
from apps.core.exceptions import Conflict, Forbidden, InvalidTransition, NotFound
from apps.core.observability import metrics
from apps.core.observability.events import log_patient_status_change

logger = logging.getLogger(__name__)


class Channel:
    """How a status change was initiated."""
    MANUAL = 'manual'
    AUTO_DISCHARGE = 'auto_discharge'
    DISCHARGE_REQUEST = 'discharge_request'

    ALL = (MANUAL, AUTO_DISCHARGE, DISCHARGE_REQUEST)


# Roles allowed to move a patient to `discharged`, per channel
DISCHARGE_ROLES_BY_CHANNEL = {
    Channel.MANUAL: ELEVATED_ROLES,
    Channel.DISCHARGE_REQUEST: ELEVATED_ROLES,
    Channel.AUTO_DISCHARGE: ELEVATED_ROLES | {RoleChoices.THERAPIST.value},
}

_ACTIVITY_STATUSES = {PatientStatusChoices.ACTIVE.value, PatientStatusChoices.INACTIVE.value}


def check_status_transition(current, target, actor_role, channel, is_assigned=False):
    """
    Raise if ``actor_role`` may not move a patient from ``current`` to ``target``
    through ``channel``; return None when the transition is allowed.

    Raises:
        InvalidTransition: unknown status/channel, terminal source, no-op,
            or a transition no channel supports
        Forbidden: legal transition, but not for this role/channel
    """
    valid_statuses = set(PatientStatusChoices.values)
    if current not in valid_statuses or target not in valid_statuses:
        raise InvalidTransition(f'unknown patient status: {current!r} -> {target!r}')

    if channel not in Channel.ALL:
        raise InvalidTransition(f'unknown transition channel: {channel!r}')

    if current == PatientStatusChoices.DISCHARGED:
        raise InvalidTransition('patient is discharged; discharged is a terminal status')

    if current == target:
        raise InvalidTransition(f'patient is already {current}')

    if current in _ACTIVITY_STATUSES and target in _ACTIVITY_STATUSES:
        if channel != Channel.MANUAL:
            raise InvalidTransition(f'{current} -> {target} is only possible as a manual change')
        if actor_role in ELEVATED_ROLES:
            return None
        if actor_role in CLINICAL_ROLES:
            if is_assigned:
                return None
            raise Forbidden(
                f'{actor_role} may only change the status of patients assigned to them'
            )
        raise Forbidden(f'role {actor_role or "none"} may not change patient status')

    if target == PatientStatusChoices.DISCHARGED:
        if actor_role in DISCHARGE_ROLES_BY_CHANNEL[channel]:
            return None
        raise Forbidden(
            f'role {actor_role or "none"} may not discharge a patient via {channel}'
        )

    raise InvalidTransition(f'transition {current} -> {target} is not allowed')


def transition_patient_status(
    patient,
    target,
    *,
    actor,
    actor_role,
    channel,
    audit_action,
    reason=None,
    extra_updates=None,
):
    """
    Guarded compare-and-set of ``patient.status``. Must run inside a transaction.

    The UPDATE only matches while the row still holds the status the caller
    read; zero matched rows means someone else moved the patient first.

    Returns the refreshed Patient.

    Raises:
        InvalidTransition / Forbidden: from the guard
        Conflict: the row changed since it was read
    """
    from_status = patient.status
    is_assigned = bool(actor) and patient.assigned_clinical_id == actor.pk

    try:
        check_status_transition(from_status, target, actor_role, channel, is_assigned)
    except (InvalidTransition, Forbidden):
        metrics.patient_status_transition_total.labels(
            from_status=from_status, to_status=target, channel=channel, result='rejected'
        ).inc()
        log_patient_status_change(patient.pk, from_status, target, channel, result='blocked')
        raise

    updates = {'status': target, 'updated_at': timezone.now()}
    updates.update(extra_updates or {})

    updated = Patient.objects.filter(pk=patient.pk, status=from_status).update(**updates)
    if updated == 0:
        metrics.patient_status_transition_total.labels(
            from_status=from_status, to_status=target, channel=channel, result='conflict'
        ).inc()
        raise Conflict(
            f'patient status changed concurrently (expected {from_status})'
        )

    patient.refresh_from_db()

    if target == PatientStatusChoices.DISCHARGED:
        patient_discharge_applied.send(
            sender=Patient,
            patient=patient,
            channel=channel,
            actor=actor,
            actor_role=actor_role,
        )

    log_patient_audit(
        actor,
        patient,
        audit_action,
        from_status=from_status,
        to_status=target,
        channel=channel,
        actor_role=actor_role,
        reason=reason,
    )

    metrics.patient_status_transition_total.labels(
        from_status=from_status, to_status=target, channel=channel, result='success'
    ).inc()
    log_patient_status_change(patient.pk, from_status, target, channel, actor_role=actor_role)

    actor_id = str(actor.pk) if actor else None
    send_on_commit(
        patient_status_changed,
        'patient_status_changed',
        sender=Patient,
        patient_id=str(patient.pk),
        from_status=from_status,
        to_status=target,
        channel=channel,
        actor_id=actor_id,
        actor_role=actor_role,
    )
    if target == PatientStatusChoices.DISCHARGED:
        send_on_commit(
            patient_discharged,
            'patient_discharged',
            sender=Patient,
            patient_id=str(patient.pk),
            channel=channel,
            actor_id=actor_id,
            actor_role=actor_role,
            assigned_clinical_id=(
                str(patient.assigned_clinical_id) if patient.assigned_clinical_id else None
            ),
            reason=patient.discharge_reason,
        )

    return patient


def set_patient_status(patient_id, new_status, actor, actor_role):
    """
    Manual status change (active <-> inactive, or override discharge).

    Returns the updated Patient.

    Raises:
        NotFound, InvalidTransition, Forbidden, Conflict
    """
    with transaction.atomic():
        try:
            patient = Patient.objects.select_for_update().get(pk=patient_id)
        except (Patient.DoesNotExist, ValidationError):
            raise NotFound(f'patient {patient_id} not found')

        extra_updates = None
        reason = None
        if new_status == PatientStatusChoices.DISCHARGED:
            reason = f'Discharged manually by {actor_role}'
            extra_updates = {
                'discharge_date': timezone.now(),
                'auto_discharged': False,
                'discharge_reason': reason,
            }

        return transition_patient_status(
            patient,
            new_status,
            actor=actor,
            actor_role=actor_role,
            channel=Channel.MANUAL,
            audit_action=PatientAuditActionChoices.STATUS_CHANGE,
            reason=reason,
            extra_updates=extra_updates,
        )


def remove_from_program(patient_ids, actor, actor_role):
    """
    Bulk-clear the level-of-care assignment of ``patient_ids``.

    Only ``loc`` is touched; lifecycle status never changes here.
    Returns the number of patients updated.

    Raises:
        Forbidden: actor is not admin/supervisor
        ValidationError: empty id list
    """
    if actor_role not in ELEVATED_ROLES:
        raise Forbidden(f'role {actor_role or "none"} may not remove patients from a program')

    patient_ids = list(patient_ids or [])
    if not patient_ids:
        raise ValidationError({'patient_ids': ['At least one patient id is required.']})

    with transaction.atomic():
        patients = list(
            Patient.objects.select_for_update()
            .filter(pk__in=patient_ids)
            .exclude(loc='')
            .values_list('pk', 'loc')
        )
        if not patients:
            return 0

        updated = Patient.objects.filter(pk__in=[pk for pk, _ in patients]).update(
            loc='', updated_at=timezone.now()
        )
        for pk, previous_loc in patients:
            log_patient_audit(
                actor,
                pk,
                PatientAuditActionChoices.REMOVE_FROM_PROGRAM,
                previous_loc=previous_loc,
                actor_role=actor_role,
            )

    logger.info(
        'Patients removed from program',
        extra={
            'event': 'patients_removed_from_program',
            'requested': len(patient_ids),
            'updated': updated,
            'actor_role': actor_role,
        }
    )
    return updated
