"""
WebSocket consumers for real-time updates.

Every socket joins its user's group for conversation lists, unread badges,
notifications and custom order updates. Message snapshots are only sent
for conversations the client subscribed to with ``subscribe_conversation``.
"""

import json
import asyncio
import logging

from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async
from django.core.serializers.json import DjangoJSONEncoder

from apps.conversations.serializers import ConversationSerializer
from apps.conversations.services import conversation_registry
from apps.core.exceptions import AppError
from apps.messaging.serializers import MessageSerializer
from apps.messaging.services import message_log
from .services import conversation_group, user_group

logger = logging.getLogger(__name__)


class MessagingConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for real-time messaging updates
    """

    # Class-level flag to prevent log spam
    _redis_error_logged = False

    async def connect(self):
        self.user_id = None
        self.email = None
        self.group_joined = False
        self.conversations = set()

        user = self.scope.get('user')
        if isinstance(user, dict):
            self.user_id = user.get('user_id')
            self.email = user.get('email')

        if not self.user_id:
            # Reject connection if not authenticated
            await self.close(code=4001)
            return

        # Accept connection first (before any channel layer operations)
        await self.accept()

        self.user_room = user_group(self.user_id)
        self.group_joined = await self._safe_group_add(self.user_room)

        await self._send_event('authenticated', {
            'userId': self.user_id,
            'email': self.email,
            'realtime': self.group_joined,
        })

        # Initial snapshot of the conversation list and badges
        conversations = await self._load_conversations()
        await self._send_event('conversations_snapshot', {'conversations': conversations})
        unread = await self._load_unread()
        await self._send_event('unread_count_update', unread)

        if self.group_joined:
            logger.info(f'[websocket] User {self.user_id} connected with real-time updates')
        else:
            logger.info(f'[websocket] User {self.user_id} connected (polling mode - channel layer unavailable)')

    async def _safe_group_add(self, group: str) -> bool:
        """Join a group, tolerating an unreachable channel layer"""
        try:
            if self.channel_layer:
                await asyncio.wait_for(
                    self.channel_layer.group_add(group, self.channel_name),
                    timeout=5.0
                )
                MessagingConsumer._redis_error_logged = False
                return True
        except asyncio.TimeoutError:
            self._log_redis_error('Redis timeout')
        except Exception as e:
            self._log_redis_error(str(e))
        return False

    async def _safe_group_discard(self, group: str):
        try:
            if self.channel_layer:
                await asyncio.wait_for(
                    self.channel_layer.group_discard(group, self.channel_name),
                    timeout=5.0
                )
        except Exception as e:
            logger.debug(f'[websocket] group_discard {group} failed: {e}')

    def _log_redis_error(self, error_msg):
        """Log channel layer errors only once to prevent spam"""
        if not MessagingConsumer._redis_error_logged:
            logger.warning(f'[websocket] Channel layer unavailable: {error_msg}. Real-time updates disabled.')
            MessagingConsumer._redis_error_logged = True

    async def disconnect(self, close_code):
        for conversation_id in list(getattr(self, 'conversations', ())):
            await self._safe_group_discard(conversation_group(conversation_id))
        if getattr(self, 'group_joined', False):
            await self._safe_group_discard(self.user_room)

        logger.info(f'[websocket] User {getattr(self, "user_id", "unknown")} disconnected')

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or '{}')
        except ValueError:
            await self._send_event('error', {'message': 'Invalid JSON', 'code': 'INVALID_MESSAGE'})
            return

        if not isinstance(data, dict) or not isinstance(data.get('data') or {}, dict):
            await self._send_event('error', {'message': 'Expected a JSON object', 'code': 'INVALID_MESSAGE'})
            return

        event_type = data.get('event')
        payload = data.get('data') or {}

        try:
            if event_type == 'ping':
                await self.send(text_data=json.dumps({
                    'event': 'pong',
                    'timestamp': data.get('timestamp')
                }))
            elif event_type == 'subscribe_conversation':
                await self._subscribe_conversation(payload.get('conversationId'))
            elif event_type == 'unsubscribe_conversation':
                await self._unsubscribe_conversation(payload.get('conversationId'))
            else:
                await self._send_event('error', {
                    'message': f'Unknown event: {event_type}',
                    'code': 'UNKNOWN_EVENT',
                })
        except AppError as e:
            await self._send_event('error', {'message': e.message, 'code': e.code})

    async def _subscribe_conversation(self, conversation_id):
        if not conversation_id:
            await self._send_event('error', {'message': 'conversationId is required', 'code': 'VALIDATION_ERROR'})
            return

        # Raises NotFound for non-participants
        messages = await self._load_messages(conversation_id)
        conversation_id = str(conversation_id)

        if conversation_id not in self.conversations:
            if await self._safe_group_add(conversation_group(conversation_id)):
                self.conversations.add(conversation_id)

        await self._send_event('messages_snapshot', {
            'conversationId': conversation_id,
            'messages': messages,
        })

    async def _unsubscribe_conversation(self, conversation_id):
        conversation_id = str(conversation_id or '')
        if conversation_id in self.conversations:
            self.conversations.discard(conversation_id)
            await self._safe_group_discard(conversation_group(conversation_id))

    @database_sync_to_async
    def _load_messages(self, conversation_id):
        conversation = conversation_registry.get_conversation(conversation_id, self.user_id)
        return list(MessageSerializer(message_log.all_messages(conversation.id), many=True).data)

    @database_sync_to_async
    def _load_conversations(self):
        return list(ConversationSerializer(conversation_registry.all_conversations(self.user_id), many=True).data)

    @database_sync_to_async
    def _load_unread(self):
        return {
            'unreadCounts': conversation_registry.get_unread_counts(self.user_id),
            'totalUnread': conversation_registry.get_total_unread_count(self.user_id),
        }

    async def _send_event(self, event: str, data):
        await self.send(text_data=json.dumps({'event': event, 'data': data}, cls=DjangoJSONEncoder))

    # Channel layer event handlers

    async def messages_snapshot(self, event):
        await self._send_event('messages_snapshot', event['data'])

    async def conversations_snapshot(self, event):
        await self._send_event('conversations_snapshot', event['data'])

    async def unread_count_update(self, event):
        await self._send_event('unread_count_update', event['data'])

    async def notification(self, event):
        await self._send_event('notification', event['data'])

    async def custom_order_update(self, event):
        await self._send_event('custom_order_update', event['data'])

    async def error_message(self, event):
        await self._send_event('error', event['data'])
