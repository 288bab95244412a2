"""
WebSocket service for emitting events to clients.

Two kinds of Channels groups are used:
    user_<id>            everything addressed to one signed-in user
    conversation_<id>    message snapshots for sockets watching a thread
"""

import asyncio
import json
import logging
from typing import Dict, List, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

logger = logging.getLogger(__name__)


def user_group(user_id: str) -> str:
    """Get the group name for a user"""
    return f'user_{user_id}'


def conversation_group(conversation_id) -> str:
    """Get the group name for a conversation"""
    return f'conversation_{conversation_id}'


class WebSocketService:
    """
    WebSocket service for real-time updates.

    Emission is best effort: a missing or unreachable channel layer is
    logged and never fails the write that triggered the event.
    """

    def __init__(self):
        self._channel_layer = None

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def _is_async_context(self) -> bool:
        """Check if we're in an async context"""
        try:
            asyncio.get_running_loop()
            return True
        except RuntimeError:
            return False

    async def _async_group_send(self, group: str, message: Dict) -> None:
        try:
            await self.channel_layer.group_send(group, message)
        except Exception as e:
            logger.warning(f'[websocket] group_send to {group} failed: {e}')

    def _group_send(self, group: str, event_type: str, data: Dict) -> None:
        if not self.channel_layer:
            logger.debug('[websocket] Channel layer not configured')
            return

        message = {
            'type': event_type,
            'data': json.loads(json.dumps(
                {**data, 'timestamp': timezone.now().isoformat()},
                cls=DjangoJSONEncoder,
            )),
        }

        # Called from a coroutine: schedule instead of blocking the loop
        if self._is_async_context():
            asyncio.ensure_future(self._async_group_send(group, message))
            return

        try:
            async_to_sync(self.channel_layer.group_send)(group, message)
        except Exception as e:
            logger.warning(f'[websocket] group_send to {group} failed: {e}')

    def emit_messages_snapshot(self, conversation_id, messages: List[Dict]) -> None:
        """
        Send the full chronological message list of a conversation to every
        socket watching it.
        """
        self._group_send(
            conversation_group(conversation_id),
            'messages_snapshot',
            {'conversationId': str(conversation_id), 'messages': messages},
        )

    def emit_conversations_snapshot(self, user_id: str, conversations: List[Dict]) -> None:
        """Send a user's full conversation list, newest activity first."""
        self._group_send(
            user_group(user_id),
            'conversations_snapshot',
            {'conversations': conversations},
        )

    def emit_unread_count_update(
        self,
        user_id: str,
        unread_counts: Dict[str, int],
        total_unread: int
    ) -> None:
        """
        Tell the user's other open views that their unread state changed.
        """
        self._group_send(
            user_group(user_id),
            'unread_count_update',
            {'unreadCounts': unread_counts, 'totalUnread': total_unread},
        )

        logger.debug(f'[websocket] Emitted unread count to user {user_id}: {total_unread} total')

    def emit_notification(self, user_id: str, notification: Dict) -> None:
        self._group_send(
            user_group(user_id),
            'notification',
            {'notification': notification},
        )

    def emit_custom_order_update(self, user_ids, order: Dict) -> None:
        """Send a custom order's new state to each party."""
        for user_id in {u for u in user_ids if u}:
            self._group_send(
                user_group(user_id),
                'custom_order_update',
                {'customOrder': order},
            )

    def emit_error(self, user_id: str, error: str, code: Optional[str] = None) -> None:
        self._group_send(
            user_group(user_id),
            'error_message',
            {'error': error, 'code': code},
        )


# Create singleton instance
websocket_service = WebSocketService()
