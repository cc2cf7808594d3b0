"""
Tests for the observability layer and the error taxonomy.

Validates correlation ids, PHI/PII redaction, domain event structure,
health/metrics endpoints and the HTTP mapping of lifecycle errors.
"""
import json
import logging
from unittest.mock import Mock, patch

import pytest
from django.core.exceptions import ValidationError
from rest_framework import status

from apps.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidState,
    InvalidTransition,
    NotFound,
    error_response,
    validation_error_response,
)
from apps.core.observability.correlation import (
    RequestCorrelationMiddleware,
    clear_request_context,
)
from apps.core.observability.events import log_domain_event, log_patient_status_change
from apps.core.observability.logging import SanitizedJSONFormatter, sanitize_dict
from apps.core.observability.metrics import metrics


class TestRequestCorrelation:

    def teardown_method(self):
        clear_request_context()

    def test_generates_request_id_if_missing(self):
        middleware = RequestCorrelationMiddleware(lambda r: Mock(status_code=200))
        request = Mock(META={}, path='/api/test', method='GET')
        request.user = Mock(is_authenticated=False)

        middleware.process_request(request)

        assert request.request_id

    def test_propagates_existing_request_id(self):
        middleware = RequestCorrelationMiddleware(lambda r: Mock(status_code=200))
        request = Mock(META={'HTTP_X_REQUEST_ID': 'req-123'}, path='/api/test', method='GET')
        request.user = Mock(is_authenticated=False)

        middleware.process_request(request)

        assert request.request_id == 'req-123'

    @pytest.mark.django_db
    def test_request_id_echoed_on_response(self, api_client):
        response = api_client.get('/healthz', HTTP_X_REQUEST_ID='req-456')

        assert response['X-Request-ID'] == 'req-456'


class TestSanitization:

    def test_clinical_text_redacted(self):
        data = {
            'patient_id': 'p-1',
            'first_name': 'Jane',
            'session_notes': 'Discussed trauma history',
            'progress': 'Improving',
            'status': 'active',
        }

        sanitized = sanitize_dict(data)

        assert sanitized['patient_id'] == 'p-1'
        assert sanitized['status'] == 'active'
        assert sanitized['first_name'] == '[REDACTED]'
        assert sanitized['session_notes'] == '[REDACTED]'
        assert sanitized['progress'] == '[REDACTED]'

    def test_discharge_text_redacted_in_nested_values(self):
        data = {
            'request_id': 'r-1',
            'requests': [{'reason': 'Relocating to be near family', 'status': 'pending'}],
            'patient': {'discharge_reason': 'Treatment completed', 'review_notes': 'OK', 'loc': 'IOP'},
            'evaluation_token': 'abc:def',
        }

        sanitized = sanitize_dict(data)

        assert sanitized['request_id'] == 'r-1'
        assert sanitized['requests'] == [{'reason': '[REDACTED]', 'status': 'pending'}]
        assert sanitized['patient'] == {
            'discharge_reason': '[REDACTED]',
            'review_notes': '[REDACTED]',
            'loc': 'IOP',
        }
        assert sanitized['evaluation_token'] == '[REDACTED]'

    def test_json_formatter_redacts_extra(self):
        record = logging.LogRecord('test', logging.INFO, __file__, 1, 'Patient updated', None, None)
        record.patient_id = 'p-1'
        record.last_name = 'Roe'

        output = json.loads(SanitizedJSONFormatter().format(record))

        assert output['message'] == 'Patient updated'
        assert output['patient_id'] == 'p-1'
        assert output['last_name'] == '[REDACTED]'


class TestDomainEvents:

    @patch('apps.core.observability.events.logger')
    def test_log_domain_event_structure(self, mock_logger):
        log_domain_event(
            'discharge.auto_discharged',
            entity_type='Patient',
            entity_id='p-1',
            entity_ids={'patient_id': 'p-1'},
            notes='should not leak',
        )

        extra = mock_logger.info.call_args[1]['extra']
        assert extra['event'] == 'discharge.auto_discharged'
        assert extra['entity_type'] == 'Patient'
        assert extra['patient_id'] == 'p-1'
        assert extra['notes'] == '[REDACTED]'

    @patch('apps.core.observability.events.logger')
    def test_blocked_transition_logged_as_warning(self, mock_logger):
        log_patient_status_change('p-1', 'active', 'discharged', 'manual', result='blocked')

        mock_logger.warning.assert_called_once()
        extra = mock_logger.warning.call_args[1]['extra']
        assert extra['to_status'] == 'discharged'


@pytest.mark.django_db
class TestMetrics:

    def test_status_transition_counted(self, patient, admin_user):
        from apps.clinical.lifecycle import set_patient_status

        counter = metrics.patient_status_transition_total.labels(
            from_status='active', to_status='inactive', channel='manual', result='success'
        )
        before = counter._value.get()

        set_patient_status(patient.id, 'inactive', admin_user, 'admin')

        assert counter._value.get() == before + 1

    def test_metrics_endpoint(self, api_client):
        response = api_client.get('/metrics')

        assert response.status_code == status.HTTP_200_OK
        assert b'discharge_evaluations_total' in response.content

    def test_health_endpoints(self, api_client):
        assert api_client.get('/healthz').status_code == status.HTTP_200_OK
        response = api_client.get('/readyz')
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['checks'] == {'database': True}


class TestErrorMapping:

    @pytest.mark.parametrize('exc_class,http_status,error_type', [
        (NotFound, 404, 'not_found'),
        (InvalidState, 409, 'invalid_state'),
        (Conflict, 409, 'conflict'),
        (Forbidden, 403, 'forbidden'),
        (InvalidTransition, 400, 'invalid_transition'),
    ])
    def test_error_response(self, exc_class, http_status, error_type):
        response = error_response(exc_class('explains why'))

        assert response.status_code == http_status
        assert response.data == {'error': 'explains why', 'error_type': error_type}

    def test_details_included(self):
        response = error_response(Conflict('lost the race', expected='pending'))

        assert response.data['details'] == {'expected': 'pending'}

    def test_validation_error_response(self):
        response = validation_error_response(ValidationError({'reason': ['A discharge reason is required.']}))

        assert response.status_code == 400
        assert response.data == {
            'error': 'reason: A discharge reason is required.',
            'error_type': 'validation_error',
        }
