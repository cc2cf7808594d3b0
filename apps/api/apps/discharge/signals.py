"""
Discharge request signals.

Sent through apps.core.dispatch.send_on_commit. Payload values are ids and
status codes only.
"""
from django.dispatch import Signal

# Payload: request_id, patient_id, requested_by_id, requested_by_role
discharge_request_created = Signal()

# Payload: request_id, patient_id, requested_by_id, reviewed_by_id,
#          reviewed_by_role, decision (approved|denied)
discharge_request_reviewed = Signal()
