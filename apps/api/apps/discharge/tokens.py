"""
Evaluation tokens.

A positive discharge evaluation is handed back to the client as a signed,
time-limited token. Auto-discharge applies the evaluation carried by a
token it can verify; nothing is stored server-side.
"""
from django.conf import settings
from django.core import signing
from django.utils.dateparse import parse_datetime

from apps.core.exceptions import InvalidState

TOKEN_SALT = 'apps.discharge.evaluation'
DEFAULT_MAX_AGE = 900


def _max_age():
    return getattr(settings, 'DISCHARGE_CRITERIA', {}).get('EVALUATION_TOKEN_MAX_AGE', DEFAULT_MAX_AGE)


def make_evaluation_token(result):
    """Sign the essentials of a positive DischargeCriteriaResult."""
    payload = {
        'patient_id': str(result.patient_id),
        'status': result.patient_status,
        'reason': result.reason,
        'criteria': list(result.criteria),
        'evaluated_at': result.evaluated_at.isoformat(),
    }
    return signing.dumps(payload, salt=TOKEN_SALT, compress=True)


def read_evaluation_token(token, patient_id):
    """
    Verify ``token`` for ``patient_id`` and return its payload.

    ``evaluated_at`` is returned as an aware datetime.

    Raises:
        InvalidState: missing, tampered, expired or foreign token
    """
    if not token:
        raise InvalidState('an evaluation token is required; evaluate the patient first')

    try:
        payload = signing.loads(token, salt=TOKEN_SALT, max_age=_max_age())
    except signing.SignatureExpired:
        raise InvalidState('evaluation has expired; re-evaluate the patient')
    except signing.BadSignature:
        raise InvalidState('evaluation token is invalid; re-evaluate the patient')

    if payload.get('patient_id') != str(patient_id):
        raise InvalidState('evaluation token belongs to a different patient')

    payload['evaluated_at'] = parse_datetime(payload['evaluated_at'])
    return payload
