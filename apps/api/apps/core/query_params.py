"""
Parsing helpers for list filters.

Malformed values raise InvalidQueryParameter, which DRF renders as a 400
with the usual ``{"error", "error_type"}`` body instead of letting the ORM
fail on the lookup.
"""
import uuid

from django.utils.dateparse import parse_date

from apps.core.exceptions import InvalidQueryParameter


def uuid_param(request, name):
    """Return the UUID in ``?name=`` or None when the parameter is absent."""
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return uuid.UUID(raw)
    except (ValueError, AttributeError, TypeError):
        raise InvalidQueryParameter(name, f'"{raw}" is not a valid UUID')


def date_param(request, name):
    """Return the date in ``?name=`` (YYYY-MM-DD) or None when absent."""
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise InvalidQueryParameter(name, f'"{raw}" is not a valid date (YYYY-MM-DD)')
    return value
