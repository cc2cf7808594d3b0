"""
Notification services.
"""
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction

from apps.core.observability import metrics
from apps.notifications.models import Notification

logger = logging.getLogger(__name__)


def create_notification(recipient, notification_type, title, message, data=None):
    """
    Persist a notification and, when NOTIFICATIONS_EMAIL_ENABLED is on,
    queue an e-mail copy once the row is committed.
    """
    notification = Notification.objects.create(
        recipient=recipient,
        type=notification_type,
        title=title,
        message=message,
        data=data or {},
    )
    metrics.notifications_created_total.labels(type=notification_type).inc()
    logger.info(
        'Notification created',
        extra={
            'event': 'notification.created',
            'notification_id': str(notification.pk),
            'notification_type': notification_type,
            'recipient_id': str(recipient.pk),
        }
    )

    if getattr(settings, 'NOTIFICATIONS_EMAIL_ENABLED', False) and recipient.email:
        from apps.notifications.tasks import send_notification_email
        notification_id = str(notification.pk)
        transaction.on_commit(lambda: send_notification_email.delay(notification_id))

    return notification


def notify_users(recipients, notification_type, title, message, data=None):
    """Create one notification per recipient. Returns the notifications."""
    return [
        create_notification(recipient, notification_type, title, message, data)
        for recipient in recipients
    ]


def mark_as_read(notification_id, user):
    """Mark one of ``user``'s notifications read. Returns False if not theirs."""
    try:
        return Notification.objects.filter(pk=notification_id, recipient=user).update(read=True) > 0
    except ValidationError:
        return False


def mark_all_as_read(user):
    """Mark every unread notification of ``user`` read. Returns the count."""
    return Notification.objects.filter(recipient=user, read=False).update(read=True)


def unread_count(user):
    return Notification.objects.filter(recipient=user, read=False).count()
