"""
Notification service.

Stores in-app notifications and pushes them to the recipient's open
sessions. Custom-order notifications are dispatched fire-and-forget
through Celery: a failure is logged and never fails the order operation
that triggered it.
"""

import logging
from typing import Dict, List, Optional

from apps.core.exceptions import NotFound
from apps.websocket.services import websocket_service
from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)


CUSTOM_ORDER_TITLES = {
    Notification.TYPE_CUSTOM_ORDER_REQUEST: 'Custom Order Request',
    Notification.TYPE_CUSTOM_ORDER_ACCEPTED: 'Custom Order Accepted',
    Notification.TYPE_CUSTOM_ORDER_DECLINED: 'Custom Order Declined',
}


def custom_order_message(kind: str, counterparty_name: str, items_summary: str) -> str:
    if kind == Notification.TYPE_CUSTOM_ORDER_REQUEST:
        return f'{counterparty_name} has requested a custom order: {items_summary}'
    if kind == Notification.TYPE_CUSTOM_ORDER_ACCEPTED:
        return f'{counterparty_name} accepted your custom order: {items_summary}'
    return f'Your custom order was declined: {items_summary}'


def create_notification(
    user_id: str,
    kind: str,
    title: str,
    message: str,
    data: Optional[Dict] = None
) -> Notification:
    """Store a notification and push it to the recipient."""
    notification = Notification.objects.create(
        user_id=str(user_id),
        type=kind,
        title=title,
        message=message,
        is_read=False,
        data=data or {},
    )
    websocket_service.emit_notification(str(user_id), NotificationSerializer(notification).data)
    return notification


def create_custom_order_notification(
    user_id: str,
    kind: str,
    counterparty_name: str,
    items_summary: str,
    custom_order_id: Optional[str] = None
) -> Notification:
    """
    Args:
        user_id: Recipient
        kind: custom_order_request, custom_order_accepted or custom_order_declined
        counterparty_name: The other party's display name
        items_summary: Comma-separated item names
        custom_order_id: Optional back-reference stored in ``data``
    """
    if kind not in CUSTOM_ORDER_TITLES:
        raise ValueError(f'Not a custom order notification type: {kind}')

    data = {'customerName': counterparty_name, 'details': items_summary}
    if custom_order_id:
        data['customOrderId'] = str(custom_order_id)

    return create_notification(
        user_id,
        kind,
        CUSTOM_ORDER_TITLES[kind],
        custom_order_message(kind, counterparty_name, items_summary),
        data,
    )


def dispatch_custom_order_notification(
    user_id: str,
    kind: str,
    counterparty_name: str,
    items_summary: str,
    custom_order_id: Optional[str] = None
) -> None:
    """
    Queue a custom-order notification without waiting for it.

    Broker or task failures are logged and swallowed.
    """
    from .tasks import send_custom_order_notification

    try:
        send_custom_order_notification.delay(
            str(user_id),
            kind,
            counterparty_name,
            items_summary,
            str(custom_order_id) if custom_order_id else None,
        )
    except Exception as e:
        logger.error(f'Failed to dispatch {kind} notification to {user_id}: {e}', exc_info=True)


def list_notifications(user_id: str, limit: int = 20) -> List[Notification]:
    return list(Notification.objects.filter(user_id=str(user_id)).order_by('-created_at')[:limit])


def get_unread_notification_count(user_id: str) -> int:
    return Notification.objects.filter(user_id=str(user_id), is_read=False).count()


def mark_notification_as_read(notification_id, user_id: str) -> Notification:
    """
    Raises:
        NotFound: if the notification does not exist or belongs to someone else
    """
    try:
        notification = Notification.objects.get(id=notification_id, user_id=str(user_id))
    except Notification.DoesNotExist:
        raise NotFound('Notification not found', code='NOTIFICATION_NOT_FOUND')

    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return notification


def mark_all_notifications_as_read(user_id: str) -> int:
    return Notification.objects.filter(user_id=str(user_id), is_read=False).update(is_read=True)
