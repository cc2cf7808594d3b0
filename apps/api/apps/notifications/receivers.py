"""
Signal receivers turning lifecycle events into notifications.

Connected in NotificationsConfig.ready(). Delivery goes through
apps.core.dispatch, so an exception here is logged there and never
reaches the transaction that emitted the event.
"""
import logging

from django.contrib.auth import get_user_model
from django.dispatch import receiver

from apps.authz.permissions import ELEVATED_ROLES
from apps.clinical.models import Patient, PatientStatusChoices
from apps.clinical.signals import patient_discharged, patient_status_changed
from apps.discharge.models import DischargeRequestStatusChoices
from apps.discharge.signals import discharge_request_created, discharge_request_reviewed
from apps.notifications.models import NotificationTypeChoices
from apps.notifications.services import create_notification, notify_users

logger = logging.getLogger(__name__)

CHANNEL_LABELS = {
    'manual': 'manually',
    'auto_discharge': 'automatically (all discharge criteria met)',
    'discharge_request': 'through an approved discharge request',
}


def _patient_name(patient_id):
    patient = Patient.objects.filter(pk=patient_id).only('first_name', 'last_name').first()
    return str(patient) if patient else 'Unknown patient'


def _get_user(user_id):
    if not user_id:
        return None
    return get_user_model().objects.filter(pk=user_id, is_active=True).first()


@receiver(discharge_request_created)
def notify_reviewers_of_request(sender, request_id, patient_id, requested_by_id, requested_by_role, **kwargs):
    """Every active admin/supervisor except the requester."""
    reviewers = (
        get_user_model().objects
        .filter(is_active=True, user_roles__role__name__in=ELEVATED_ROLES)
        .exclude(pk=requested_by_id)
        .distinct()
    )
    requester = _get_user(requested_by_id)
    requester_name = requester.display_name if requester else 'A staff member'

    notify_users(
        reviewers,
        NotificationTypeChoices.DISCHARGE_REQUEST_CREATED,
        'Discharge request pending review',
        f'{requester_name} ({requested_by_role}) requested discharge of {_patient_name(patient_id)}.',
        data={'request_id': request_id, 'patient_id': patient_id},
    )


@receiver(discharge_request_reviewed)
def notify_requester_of_review(sender, request_id, patient_id, requested_by_id, decision, **kwargs):
    requester = _get_user(requested_by_id)
    if requester is None:
        return

    if decision == DischargeRequestStatusChoices.APPROVED:
        notification_type = NotificationTypeChoices.DISCHARGE_REQUEST_APPROVED
        title = 'Discharge request approved'
    else:
        notification_type = NotificationTypeChoices.DISCHARGE_REQUEST_DENIED
        title = 'Discharge request denied'

    create_notification(
        requester,
        notification_type,
        title,
        f'Your discharge request for {_patient_name(patient_id)} was {decision}.',
        data={'request_id': request_id, 'patient_id': patient_id, 'decision': decision},
    )


@receiver(patient_discharged)
def notify_clinician_of_discharge(sender, patient_id, channel, assigned_clinical_id=None, **kwargs):
    clinician = _get_user(assigned_clinical_id)
    if clinician is None:
        return

    how = CHANNEL_LABELS.get(channel, channel)
    create_notification(
        clinician,
        NotificationTypeChoices.PATIENT_DISCHARGED,
        'Patient discharged',
        f'{_patient_name(patient_id)} was discharged {how}.',
        data={'patient_id': patient_id, 'channel': channel},
    )


@receiver(patient_status_changed)
def notify_clinician_of_status_change(sender, patient_id, from_status, to_status, actor_id=None, **kwargs):
    """
    Active/inactive moves made by someone other than the assigned clinician.
    Discharges are covered by notify_clinician_of_discharge.
    """
    if to_status == PatientStatusChoices.DISCHARGED:
        return

    patient = Patient.objects.filter(pk=patient_id).only('assigned_clinical_id').first()
    if patient is None or not patient.assigned_clinical_id:
        return
    if actor_id and str(patient.assigned_clinical_id) == actor_id:
        return

    clinician = _get_user(patient.assigned_clinical_id)
    if clinician is None:
        return

    create_notification(
        clinician,
        NotificationTypeChoices.PATIENT_STATUS_CHANGED,
        'Patient status changed',
        f'{_patient_name(patient_id)} moved from {from_status} to {to_status}.',
        data={'patient_id': patient_id, 'from_status': from_status, 'to_status': to_status},
    )
