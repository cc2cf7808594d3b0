"""
Structured logging with PHI/PII redaction.

Log records and domain events are keyed dicts; any key naming patient
identity, clinical narrative or a credential is replaced with
``[REDACTED]`` before it reaches a handler. Ids, statuses, roles and
criteria labels pass through.
"""
import json
import logging
from datetime import datetime, timezone

from .correlation import get_request_id, get_trace_id, get_user_id, get_user_roles

REDACTED = '[REDACTED]'

CREDENTIAL_FIELDS = frozenset({
    'password',
    'token',
    'evaluation_token',
    'access',
    'refresh',
    'secret',
    'api_key',
})

# Patient, User
IDENTITY_FIELDS = frozenset({
    'first_name',
    'last_name',
    'email',
    'phone',
    'date_of_birth',
    'address',
})

# Patient, TreatmentGoal, TreatmentRecord, Appointment, DischargeRequest
CLINICAL_TEXT_FIELDS = frozenset({
    'notes',
    'goal',
    'goals',
    'session_notes',
    'interventions',
    'progress',
    'plan_for_next_session',
    'discharge_reason',
    'reason',
    'review_notes',
})

SENSITIVE_FIELDS = CREDENTIAL_FIELDS | IDENTITY_FIELDS | CLINICAL_TEXT_FIELDS

# Attributes every LogRecord carries; anything else came in through extra={}.
_RECORD_ATTRS = frozenset(
    logging.LogRecord('', logging.INFO, '', 0, '', None, None).__dict__
) | {'message', 'asctime', 'request_id', 'trace_id', 'user_id', 'user_roles'}


def is_sensitive(key):
    return str(key).lower() in SENSITIVE_FIELDS


def _redact(value):
    if isinstance(value, dict):
        return {k: REDACTED if is_sensitive(k) else _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    return value


def sanitize_dict(data):
    """Return a redacted copy of ``data``; non-dicts are returned unchanged."""
    if not isinstance(data, dict):
        return data
    return _redact(data)


class CorrelationFilter(logging.Filter):
    """Stamp request/trace/user context onto every record."""

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        record.trace_id = get_trace_id() or '-'
        record.user_id = get_user_id() or '-'
        record.user_roles = ','.join(get_user_roles()) or '-'
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """One JSON object per line, extras redacted."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'trace_id': getattr(record, 'trace_id', '-'),
            'user_id': getattr(record, 'user_id', '-'),
            'user_roles': getattr(record, 'user_roles', '-'),
        }

        extras = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith('_')
        }
        log_data.update(_redact(extras))

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_sanitized_logger(name):
    """
    Logger with the correlation filter attached.

        logger = get_sanitized_logger(__name__)
        logger.info('Discharge evaluated', extra={'patient_id': str(patient.pk)})
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())
    return logger
