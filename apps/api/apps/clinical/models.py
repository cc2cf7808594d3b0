"""
Clinical models: patient, treatment_goal, treatment_record, appointment, patient_audit_log.

Patient.status is the lifecycle state (active / inactive / discharged) and is
only ever written through apps.clinical.lifecycle; loc (level of care) is the
separate program assignment.
"""
import uuid
from django.db import models
from django.conf import settings


# ============================================================================
# Enums
# ============================================================================

class PatientStatusChoices(models.TextChoices):
    """
    Patient lifecycle status.
    - active <-> inactive (manual)
    - active | inactive -> discharged (terminal)
    """
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    DISCHARGED = 'discharged', 'Discharged'


class GoalStatusChoices(models.TextChoices):
    """Treatment goal status"""
    PENDING = 'pending', 'Pending'
    IN_PROGRESS = 'in_progress', 'In Progress'
    ACHIEVED = 'achieved', 'Achieved'
    NOT_ACHIEVED = 'not_achieved', 'Not Achieved'


class SessionTypeChoices(models.TextChoices):
    """Treatment session types"""
    INDIVIDUAL = 'individual', 'Individual'
    GROUP = 'group', 'Group'
    FAMILY = 'family', 'Family'
    ASSESSMENT = 'assessment', 'Assessment'


class AppointmentTypeChoices(models.TextChoices):
    """Appointment types"""
    INITIAL = 'initial', 'Initial Consultation'
    FOLLOW_UP = 'follow_up', 'Follow-up'
    ASSESSMENT = 'assessment', 'Assessment'
    GROUP = 'group', 'Group Session'


class AppointmentStatusChoices(models.TextChoices):
    """
    Appointment status.
    Cancelled appointments never count as patient activity.
    """
    SCHEDULED = 'scheduled', 'Scheduled'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No Show'
    OVERDUE = 'overdue', 'Overdue'


class PatientAuditActionChoices(models.TextChoices):
    """Patient audit log action types"""
    STATUS_CHANGE = 'status_change', 'Status Change'
    AUTO_DISCHARGE = 'auto_discharge', 'Auto Discharge'
    DISCHARGE_APPROVED = 'discharge_approved', 'Discharge Approved'
    REMOVE_FROM_PROGRAM = 'remove_from_program', 'Remove From Program'


# ============================================================================
# Models
# ============================================================================

class Patient(models.Model):
    """
    Patient record.

    - id: UUID PK
    - first_name, last_name
    - intake_date, discharge_date nullable
    - status: active|inactive|discharged (default active)
    - loc: level of care / program assignment (free text)
    - assigned_clinical: FK -> auth_user nullable
    - target_sessions, target_discharge_date: optional discharge targets
    - auto_discharged, discharge_reason: discharge bookkeeping
    - created_by_user_id FK -> auth_user nullable
    - created_at, updated_at

    Patients are never hard-deleted; discharge is the end of the lifecycle.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)

    intake_date = models.DateField(blank=True, null=True)
    discharge_date = models.DateTimeField(blank=True, null=True)

    status = models.CharField(
        max_length=20,
        choices=PatientStatusChoices.choices,
        default=PatientStatusChoices.ACTIVE
    )
    loc = models.CharField(
        max_length=100,
        blank=True,
        default='',
        help_text='Level of care / program assignment'
    )
    assigned_clinical = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='assigned_patients'
    )

    # Discharge criteria / bookkeeping
    target_sessions = models.PositiveIntegerField(blank=True, null=True)
    target_discharge_date = models.DateField(blank=True, null=True)
    auto_discharged = models.BooleanField(default=False)
    discharge_reason = models.TextField(blank=True, default='')

    notes = models.TextField(blank=True, null=True)

    # Audit
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='created_patients'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient'
        verbose_name = 'Patient'
        verbose_name_plural = 'Patients'
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='idx_patient_name'),
            models.Index(fields=['status'], name='idx_patient_status'),
            models.Index(fields=['assigned_clinical'], name='idx_patient_assigned'),
        ]

    def __str__(self):
        return f"{self.first_name} {self.last_name}"

    @property
    def is_discharged(self):
        return self.status == PatientStatusChoices.DISCHARGED


class TreatmentGoal(models.Model):
    """A single treatment goal for a patient."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='treatment_goals'
    )
    goal = models.CharField(max_length=500)
    status = models.CharField(
        max_length=20,
        choices=GoalStatusChoices.choices,
        default=GoalStatusChoices.PENDING
    )
    target_date = models.DateField(blank=True, null=True)
    achieved_date = models.DateField(blank=True, null=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'treatment_goal'
        verbose_name = 'Treatment Goal'
        verbose_name_plural = 'Treatment Goals'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['patient', 'status'], name='idx_goal_patient_status'),
        ]

    def __str__(self):
        return f"{self.goal[:50]} ({self.status})"


class TreatmentRecord(models.Model):
    """
    Session note written by a therapist.

    A session counts as completed when it has a session type, notes and a
    progress entry.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='treatment_records'
    )
    therapist = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='treatment_records'
    )
    session_date = models.DateTimeField()
    session_type = models.CharField(
        max_length=20,
        choices=SessionTypeChoices.choices,
        blank=True,
        default=''
    )
    session_notes = models.TextField(blank=True, default='')
    goals = models.TextField(blank=True, default='')
    interventions = models.TextField(blank=True, default='')
    progress = models.TextField(blank=True, default='')
    plan_for_next_session = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'treatment_record'
        verbose_name = 'Treatment Record'
        verbose_name_plural = 'Treatment Records'
        ordering = ['-session_date']
        indexes = [
            models.Index(fields=['patient', 'session_date'], name='idx_record_patient_date'),
        ]

    def __str__(self):
        return f"Session {self.session_date.date()} - {self.patient}"

    @property
    def is_completed(self):
        return bool(self.session_type and self.session_notes.strip() and self.progress.strip())


class Appointment(models.Model):
    """
    Scheduled appointments.

    - patient_id: FK -> patient (required)
    - clinical_id: FK -> auth_user nullable
    - appointment_date: datetime
    - duration: minutes (default 60)
    - type, status
    - notes nullable
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    patient = models.ForeignKey(
        'Patient',
        on_delete=models.PROTECT,
        related_name='appointments'
    )
    clinical = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='appointments'
    )
    appointment_date = models.DateTimeField()
    duration = models.PositiveIntegerField(default=60, help_text='Duration in minutes')
    type = models.CharField(
        max_length=20,
        choices=AppointmentTypeChoices.choices,
        default=AppointmentTypeChoices.FOLLOW_UP
    )
    status = models.CharField(
        max_length=20,
        choices=AppointmentStatusChoices.choices,
        default=AppointmentStatusChoices.SCHEDULED
    )
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointment'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['-appointment_date']
        indexes = [
            models.Index(fields=['patient', 'appointment_date'], name='idx_appointment_patient_date'),
            models.Index(fields=['status'], name='idx_appointment_status'),
        ]

    def __str__(self):
        return f"Appointment {self.appointment_date.date()} - {self.patient}"


class PatientAuditLog(models.Model):
    """
    Audit trail for patient lifecycle actions.

    Written for every status change, program removal and discharge.

    - actor_user: who acted (nullable for system actions)
    - action: status_change|auto_discharge|discharge_approved|remove_from_program
    - patient
    - metadata: JSON with from/to status, channel, actor role, reason
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='patient_audit_logs',
        help_text='User who performed the action (null for system actions)'
    )
    action = models.CharField(
        max_length=30,
        choices=PatientAuditActionChoices.choices
    )
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='audit_logs'
    )
    metadata = models.JSONField(default=dict)

    class Meta:
        db_table = 'patient_audit_log'
        verbose_name = 'Patient Audit Log'
        verbose_name_plural = 'Patient Audit Logs'
        indexes = [
            models.Index(fields=['created_at'], name='idx_audit_created_at'),
            models.Index(fields=['patient'], name='idx_audit_patient'),
            models.Index(fields=['action'], name='idx_audit_action'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        actor = self.actor_user.email if self.actor_user else 'system'
        return f"{self.action} on patient[{str(self.patient_id)[:8]}] by {actor}"


# ============================================================================
# Audit Helper Functions
# ============================================================================

def log_patient_audit(actor, patient, action, **metadata):
    """
    Create a patient audit log entry.

    Args:
        actor: User instance or None for system actions
        patient: Patient instance or id
        action: PatientAuditActionChoices value
        **metadata: from_status, to_status, channel, actor_role, reason, ...

    Returns:
        PatientAuditLog instance
    """
    from apps.core.observability import metrics

    patient_id = getattr(patient, 'pk', patient)
    audit_log = PatientAuditLog.objects.create(
        actor_user=actor,
        action=action,
        patient_id=patient_id,
        metadata={k: v for k, v in metadata.items() if v is not None},
    )
    metrics.patient_audit_log_created_total.labels(action=action).inc()
    return audit_log
