"""
Tracing support (OpenTelemetry API).

Without a configured SDK the API hands out non-recording spans, so these
helpers are safe to call from any code path.
"""
import logging
import time
from contextlib import contextmanager
from typing import Optional, Dict, Any

from opentelemetry import trace
from opentelemetry.trace import SpanKind

logger = logging.getLogger(__name__)

tracer = trace.get_tracer(__name__)

_SPAN_KINDS = {
    'server': SpanKind.SERVER,
    'client': SpanKind.CLIENT,
    'internal': SpanKind.INTERNAL,
}


@contextmanager
def trace_span(
    name: str,
    kind: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None
):
    """
    Context manager for creating trace spans.

    Args:
        name: Span name
        kind: Span kind (server, client, internal)
        attributes: Span attributes

    Usage:
        with trace_span('auto_discharge', attributes={'patient_id': str(patient.id)}):
            # ... operation ...
    """
    start_time = time.time()
    span_kind = _SPAN_KINDS.get(kind, SpanKind.INTERNAL)

    with tracer.start_as_current_span(name, kind=span_kind) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            span.set_attribute('error', True)
            span.set_attribute('error.type', e.__class__.__name__)
            span.set_attribute('error.message', str(e))
            logger.debug(
                f'Span failed: {name}',
                extra={
                    'event': 'span_error',
                    'span_name': name,
                    'duration_ms': (time.time() - start_time) * 1000,
                    'error_type': e.__class__.__name__,
                }
            )
            raise


def add_span_attribute(key: str, value: Any):
    """
    Add attribute to the current span if it is recording.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        span.set_attribute(key, value)
