"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Any, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.
    
    Args:
        event_name: Name of the event (e.g., 'patient_status_changed', 'discharge_request_reviewed')
        entity_type: Type of entity (e.g., 'Patient', 'DischargeRequest')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, etc.)
        **extra_fields: Additional fields to log (will be sanitized)
    
    Example:
        log_domain_event(
            'patient_auto_discharged',
            entity_type='Patient',
            entity_id=str(patient.id),
            entity_ids={'patient_id': str(patient.id)},
            result='success',
            channel='auto_discharge',
            sessions_completed=12
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }
    
    if entity_type:
        event_data['entity_type'] = entity_type
    
    if entity_id:
        event_data['entity_id'] = entity_id
    
    if entity_ids:
        event_data.update(entity_ids)
    
    # Sanitize extra fields
    sanitized_extra = sanitize_dict(extra_fields)
    event_data.update(sanitized_extra)
    
    # Log at appropriate level based on result
    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'throttled']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.
    
    Used to verify data integrity at critical points.
    
    Args:
        checkpoint_name: Name of checkpoint (e.g., 'discharge_approval_consistency')
        entity_ids: Dictionary of entity IDs involved
        checks_passed: Dictionary of check results {check_name: passed}
        **extra_fields: Additional context
    
    Example:
        log_consistency_checkpoint(
            'discharge_approval_consistency',
            entity_ids={'request_id': str(req.id), 'patient_id': str(req.patient_id)},
            checks_passed={
                'request_approved': True,
                'patient_discharged': True,
            },
        )
    """
    all_passed = all(checks_passed.values())
    
    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))
    
    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_patient_status_change(patient_id, from_status, to_status, channel, result='success', **extra):
    """Log a patient status transition (accepted or rejected by the guard)."""
    log_domain_event(
        'patient_status_changed',
        entity_type='Patient',
        entity_id=str(patient_id),
        entity_ids={'patient_id': str(patient_id)},
        result=result,
        from_status=from_status,
        to_status=to_status,
        channel=channel,
        **extra
    )


def log_discharge_evaluated(patient_id, eligible, failed_criteria=None):
    """Log the outcome of a discharge criteria evaluation."""
    log_domain_event(
        'discharge_evaluated',
        entity_type='Patient',
        entity_id=str(patient_id),
        entity_ids={'patient_id': str(patient_id)},
        result='success',
        eligible=eligible,
        failed_criteria=failed_criteria or [],
    )


def log_discharge_request_event(event_name, request_obj, result='success', **extra):
    """Log a discharge request lifecycle event (created, approved, denied)."""
    log_domain_event(
        event_name,
        entity_type='DischargeRequest',
        entity_id=str(request_obj.id),
        entity_ids={
            'request_id': str(request_obj.id),
            'patient_id': str(request_obj.patient_id),
        },
        result=result,
        request_status=request_obj.status,
        **extra
    )
