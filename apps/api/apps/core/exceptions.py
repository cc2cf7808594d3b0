"""
Domain exceptions shared by the lifecycle services.

Services raise these; views translate them into DRF responses with
``error_response``. Messages are meant for humans and explain why the
operation was refused.
"""
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response


class LifecycleError(Exception):
    """Base exception for all patient lifecycle / discharge errors."""

    error_type = 'lifecycle_error'
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, **details):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self):
        data = {
            'error': self.message,
            'error_type': self.error_type,
        }
        if self.details:
            data['details'] = self.details
        return data


class NotFound(LifecycleError):
    """Patient or discharge request does not exist."""

    error_type = 'not_found'
    http_status = status.HTTP_404_NOT_FOUND


class InvalidState(LifecycleError):
    """
    The entity is in a state where the operation makes no sense
    (evaluating a discharged patient, reviewing a reviewed request,
    an expired evaluation token).
    """

    error_type = 'invalid_state'
    http_status = status.HTTP_409_CONFLICT


class Conflict(LifecycleError):
    """The entity changed underneath the caller (lost compare-and-set)."""

    error_type = 'conflict'
    http_status = status.HTTP_409_CONFLICT


class Forbidden(LifecycleError):
    """The actor's role does not allow the operation."""

    error_type = 'forbidden'
    http_status = status.HTTP_403_FORBIDDEN


class InvalidTransition(LifecycleError):
    """The requested status transition is not legal."""

    error_type = 'invalid_transition'
    http_status = status.HTTP_400_BAD_REQUEST


def error_response(exc):
    """Build the DRF response for a domain error."""
    return Response(exc.to_dict(), status=exc.http_status)


def validation_error_response(exc):
    """Build the DRF response for a Django ValidationError raised by a service."""
    if hasattr(exc, 'message_dict'):
        message = '; '.join(
            f'{field}: {" ".join(errors)}' for field, errors in exc.message_dict.items()
        )
    else:
        message = ' '.join(exc.messages)
    return Response(
        {'error': message, 'error_type': 'validation_error'},
        status=status.HTTP_400_BAD_REQUEST,
    )


class InvalidQueryParameter(APIException):
    """A list filter carried a value that cannot be parsed (400)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'validation_error'

    def __init__(self, name, reason):
        super().__init__({'error': f'{name}: {reason}', 'error_type': 'validation_error'})
