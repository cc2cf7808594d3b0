"""
Notification models: in-app notifications for clinic staff.
"""
import uuid
from django.conf import settings
from django.db import models


class NotificationTypeChoices(models.TextChoices):
    DISCHARGE_REQUEST_CREATED = 'discharge_request_created', 'Discharge Request Created'
    DISCHARGE_REQUEST_APPROVED = 'discharge_request_approved', 'Discharge Request Approved'
    DISCHARGE_REQUEST_DENIED = 'discharge_request_denied', 'Discharge Request Denied'
    PATIENT_DISCHARGED = 'patient_discharged', 'Patient Discharged'
    PATIENT_STATUS_CHANGED = 'patient_status_changed', 'Patient Status Changed'


class Notification(models.Model):
    """
    Notification addressed to one user.

    `data` carries ids only (patient_id, request_id, ...), never clinical text.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=50, choices=NotificationTypeChoices.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'read'], name='idx_notification_unread'),
            models.Index(fields=['recipient', 'created_at'], name='idx_notification_recent'),
        ]

    def __str__(self):
        return f"{self.type} -> {self.recipient_id}"
