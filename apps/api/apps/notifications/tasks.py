"""
Celery tasks for notification delivery.
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from apps.core.observability import metrics

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_notification_email(self, notification_id):
    """
    E-mail a copy of a notification to its recipient.

    Args:
        notification_id: Notification UUID (string)

    Returns:
        str: outcome summary
    """
    from apps.notifications.models import Notification

    try:
        notification = Notification.objects.select_related('recipient').get(id=notification_id)
    except Notification.DoesNotExist:
        return f"Error: Notification {notification_id} not found"

    try:
        send_mail(
            subject=notification.title,
            message=notification.message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[notification.recipient.email],
        )
    except Exception as exc:
        metrics.notification_delivery_failures_total.labels(stage='email').inc()
        logger.warning(
            'Notification e-mail failed',
            extra={
                'event': 'notification.email_failed',
                'notification_id': str(notification_id),
                'retries': self.request.retries,
            }
        )
        raise self.retry(exc=exc)

    return f"Sent notification {notification_id}"
