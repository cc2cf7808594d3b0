"""
Discharge models: discharge_request.

A discharge request is the human-in-the-loop path to discharging a patient:
staff ask, an admin or supervisor approves or denies.
"""
import uuid
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class DischargeRequestStatusChoices(models.TextChoices):
    """
    Discharge request status with allowed transitions:
    - pending -> approved | denied
    - approved, denied are terminal states
    """
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    DENIED = 'denied', 'Denied'


class DischargeRequest(models.Model):
    """
    Request to discharge a patient.

    - patient_id: FK -> patient (many requests per patient)
    - requested_by_id: FK -> auth_user
    - requested_by_role: role held at request time
    - requested_at
    - reason: required, non-blank
    - status: pending|approved|denied
    - reviewed_by_id, reviewed_by_role, reviewed_at, review_notes:
      present if and only if status != pending
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'clinical.Patient',
        on_delete=models.PROTECT,
        related_name='discharge_requests'
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='discharge_requests_made'
    )
    requested_by_role = models.CharField(max_length=50)
    requested_at = models.DateTimeField(auto_now_add=True)
    reason = models.TextField()

    status = models.CharField(
        max_length=20,
        choices=DischargeRequestStatusChoices.choices,
        default=DischargeRequestStatusChoices.PENDING
    )

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='discharge_requests_reviewed'
    )
    reviewed_by_role = models.CharField(max_length=50, blank=True, default='')
    reviewed_at = models.DateTimeField(blank=True, null=True)
    review_notes = models.TextField(blank=True, default='')

    class Meta:
        db_table = 'discharge_request'
        verbose_name = 'Discharge Request'
        verbose_name_plural = 'Discharge Requests'
        ordering = ['-requested_at']
        indexes = [
            models.Index(fields=['patient', 'status'], name='idx_discharge_req_patient'),
            models.Index(fields=['status', 'requested_at'], name='idx_discharge_req_status'),
        ]
        constraints = [
            models.CheckConstraint(
                check=(
                    Q(
                        status=DischargeRequestStatusChoices.PENDING,
                        reviewed_by__isnull=True,
                        reviewed_at__isnull=True,
                        reviewed_by_role='',
                    )
                    | (
                        ~Q(status=DischargeRequestStatusChoices.PENDING)
                        & Q(reviewed_by__isnull=False, reviewed_at__isnull=False)
                        & ~Q(reviewed_by_role='')
                    )
                ),
                name='discharge_request_reviewed_iff_not_pending',
            ),
        ]

    def __str__(self):
        return f"Discharge request {str(self.id)[:8]} ({self.status}) - {self.patient_id}"

    @property
    def is_pending(self):
        return self.status == DischargeRequestStatusChoices.PENDING

    def clean(self):
        errors = {}

        if not (self.reason or '').strip():
            errors['reason'] = 'A discharge reason is required'

        reviewed_fields_set = bool(self.reviewed_by_id or self.reviewed_at or self.reviewed_by_role)
        if self.is_pending and reviewed_fields_set:
            errors['status'] = 'A pending request cannot carry review information'
        if not self.is_pending and not (self.reviewed_by_id and self.reviewed_at and self.reviewed_by_role):
            errors['status'] = 'A reviewed request must record reviewer, role and time'

        if errors:
            raise ValidationError(errors)
