"""
Clinical signals for patient lifecycle events.

Unless noted otherwise, sent through apps.core.dispatch.send_on_commit, so
receivers only ever see committed state. Payload values are ids and status
codes, no PHI.
"""
from django.dispatch import Signal

# Emitted after any committed status change.
# Payload:
#   - patient_id: UUID string
#   - from_status / to_status: PatientStatusChoices values
#   - channel: manual | auto_discharge | discharge_request
#   - actor_id: UUID string of acting user (or None)
#   - actor_role: role the actor acted with
patient_status_changed = Signal()

# Emitted after a patient reaches `discharged`, whatever the channel.
# Payload:
#   - patient_id, channel, actor_id, actor_role
#   - assigned_clinical_id: UUID string of assigned clinician (or None)
#   - reason: discharge reason text
patient_discharged = Signal()

# Sent with plain send() inside the discharge transaction, right after the
# status write. Receivers see uncommitted state and an exception raised by
# one rolls the discharge back.
# Payload:
#   - patient: the locked Patient instance
#   - channel, actor, actor_role
patient_discharge_applied = Signal()
