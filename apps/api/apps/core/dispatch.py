"""
Deliver domain signals after the surrounding transaction commits.

Receivers run through ``send_robust``: a failing receiver is logged and
counted, never propagated, so notification problems cannot undo a
committed lifecycle transition.
"""
import logging
from functools import partial

from django.db import transaction

from apps.core.observability import metrics

logger = logging.getLogger(__name__)


def _deliver(signal, signal_name, sender, **payload):
    for receiver, response in signal.send_robust(sender=sender, **payload):
        if isinstance(response, Exception):
            metrics.notification_delivery_failures_total.labels(stage='receiver').inc()
            logger.error(
                'Signal receiver failed',
                exc_info=(type(response), response, response.__traceback__),
                extra={
                    'event': 'signal_receiver_failed',
                    'signal': signal_name,
                    'receiver': getattr(receiver, '__qualname__', repr(receiver)),
                }
            )


def send_on_commit(signal, signal_name, sender, **payload):
    """
    Schedule ``signal`` to be sent once the current transaction commits.

    Outside a transaction the signal is sent immediately.
    """
    transaction.on_commit(partial(_deliver, signal, signal_name, sender, **payload))
