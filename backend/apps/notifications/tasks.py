"""
Notification background tasks.
"""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(name='apps.notifications.tasks.send_custom_order_notification', ignore_result=True)
def send_custom_order_notification(user_id, kind, counterparty_name, items_summary, custom_order_id=None):
    """
    Store a custom-order notification for ``user_id``.

    Runs off the request path; errors are logged and the task gives up.
    """
    from .services import create_custom_order_notification

    try:
        notification = create_custom_order_notification(
            user_id,
            kind,
            counterparty_name,
            items_summary,
            custom_order_id,
        )
        logger.info(f'Sent {kind} notification {notification.id} to {user_id}')
        return str(notification.id)

    except Exception as e:
        logger.error(f'Failed to create {kind} notification for {user_id}: {e}', exc_info=True)
        return None
