"""
In-transaction receivers for patient lifecycle signals.
"""
from django.dispatch import receiver

from apps.clinical.signals import patient_discharge_applied
from apps.discharge.services import close_pending_requests


@receiver(patient_discharge_applied)
def close_requests_on_discharge(sender, patient, channel, actor, actor_role, **kwargs):
    close_pending_requests(patient, actor, actor_role, channel)
