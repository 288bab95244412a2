"""
Message log.

Append-only message history per conversation with newest-first paging for
backward scroll, full-snapshot subscriptions for live views, and the unread
bookkeeping that goes with sending and reading.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.conversations.models import Conversation, ConversationParticipant
from apps.conversations.services import conversation_registry
from apps.core.exceptions import ValidationFailed
from apps.core.services import snapshot_hub
from apps.core.utils import cursor_for, decode_cursor
from apps.websocket.services import websocket_service
from .models import Message
from .serializers import MessageSerializer

logger = logging.getLogger(__name__)


@dataclass
class MessagePage:
    """
    One page of history, oldest message first.

    ``cursor`` marks the oldest message of the page; pass it back to
    ``get_messages_paginated`` to read further into the past.
    """
    messages: List[Message] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False


def messages_topic(conversation_id) -> str:
    return f'messages:{conversation_id}'


def clean_message_text(text: str) -> str:
    """
    Trim and bound message text.

    Raises:
        ValidationFailed: if the text is empty after trimming or too long
    """
    text = (text or '').strip()
    if not text:
        raise ValidationFailed('Message text cannot be empty', code='EMPTY_MESSAGE')
    if len(text) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationFailed(
            f'Message cannot be longer than {settings.MESSAGE_MAX_LENGTH} characters',
            code='MESSAGE_TOO_LONG',
            details={'max_length': settings.MESSAGE_MAX_LENGTH},
        )
    return text


class MessageLog:
    """
    Reads and writes of conversation messages.
    """

    def send(
        self,
        conversation_id,
        sender_id: str,
        sender_name: str,
        text: str,
        recipient_id: str
    ) -> Message:
        """
        Append a message and update the conversation summary.

        The recipient's unread counter is bumped with a single UPDATE ... SET
        unread_count = unread_count + 1, so concurrent senders cannot lose an
        increment. Other participants' counters are left alone.

        Raises:
            ValidationFailed: empty/too long text, or sender/recipient not the
                two participants
            NotFound: unknown conversation
        """
        text = clean_message_text(text)
        sender_id = str(sender_id)
        recipient_id = str(recipient_id)

        conversation = conversation_registry.get_conversation(conversation_id)
        if sender_id == recipient_id:
            raise ValidationFailed('Sender and recipient must differ')
        if not conversation.has_participant(sender_id) or not conversation.has_participant(recipient_id):
            raise ValidationFailed(
                'Sender and recipient must be participants of the conversation',
                code='NOT_A_PARTICIPANT',
            )

        now = timezone.now()
        # Stamps strictly increase within a thread
        if conversation.last_message_at and now <= conversation.last_message_at:
            now = conversation.last_message_at + timedelta(microseconds=1)

        with transaction.atomic():
            message = Message.objects.create(
                conversation_id=conversation.id,
                text=text,
                sender_id=sender_id,
                sender_name=sender_name or '',
                sent_at=now,
                read=False,
            )
            Conversation.objects.filter(id=conversation.id).update(
                last_message=text,
                last_message_at=now,
                last_sender_id=sender_id,
                updated_at=now,
            )
            ConversationParticipant.objects.filter(
                conversation_id=conversation.id,
                user_id=recipient_id,
            ).update(unread_count=F('unread_count') + 1)

        logger.info(f'[messaging] Message {message.id} sent in conversation {conversation.id}')

        self.publish_messages(conversation.id)
        conversation_registry.publish_conversations(sender_id, recipient_id)
        conversation_registry.publish_unread_state(recipient_id)

        return message

    def _history(self, conversation_id):
        return Message.objects.filter(conversation_id=conversation_id)

    def get_recent_messages(self, conversation_id, page_size: Optional[int] = None) -> MessagePage:
        """
        Newest ``page_size`` messages, returned oldest first.
        """
        page_size = page_size or settings.MESSAGE_PAGE_SIZE
        rows = list(self._history(conversation_id).order_by('-sent_at', '-id')[:page_size + 1])
        return self._page(rows, page_size)

    def get_messages_paginated(self, conversation_id, page_size: int, cursor: str) -> MessagePage:
        """
        Up to ``page_size`` messages strictly older than ``cursor``, oldest first.

        One extra row is probed to decide ``has_more``; it is not returned.

        Raises:
            ValidationFailed: malformed cursor
        """
        before_at, before_id = decode_cursor(cursor)
        rows = list(
            self._history(conversation_id)
            .filter(Q(sent_at__lt=before_at) | Q(sent_at=before_at, id__lt=before_id))
            .order_by('-sent_at', '-id')[:page_size + 1]
        )
        return self._page(rows, page_size)

    def _page(self, newest_first: List[Message], page_size: int) -> MessagePage:
        has_more = len(newest_first) > page_size
        messages = list(reversed(newest_first[:page_size]))
        return MessagePage(
            messages=messages,
            cursor=cursor_for(messages[0], 'sent_at') if messages else None,
            has_more=has_more,
        )

    def all_messages(self, conversation_id) -> List[Message]:
        return list(self._history(conversation_id).order_by('sent_at', 'id'))

    def subscribe_to_messages(self, conversation_id, callback: Callable[[List[Message]], None]):
        """
        Deliver the full chronological message list now and after every change.

        Callbacks receive the whole list each time; compare its length with
        the previous delivery to find new messages.

        Returns:
            Unsubscribe function
        """
        return snapshot_hub.subscribe(
            messages_topic(conversation_id),
            lambda: self.all_messages(conversation_id),
            callback,
        )

    def mark_messages_as_read(self, conversation_id, user_id: str) -> int:
        """
        Zero the user's unread counter and flag every unread message from
        the other participant as read, in one transaction.

        Returns:
            Number of messages flipped to read
        """
        user_id = str(user_id)
        conversation = conversation_registry.get_conversation(conversation_id, user_id)

        with transaction.atomic():
            ConversationParticipant.objects.filter(
                conversation_id=conversation.id,
                user_id=user_id,
            ).update(unread_count=0)
            flipped = (
                self._history(conversation.id)
                .filter(read=False)
                .exclude(sender_id=user_id)
                .update(read=True)
            )

        if flipped:
            self.publish_messages(conversation.id)
        conversation_registry.publish_conversations(*conversation.participants)
        conversation_registry.publish_unread_state(user_id)

        return flipped

    def get_total_unread_count(self, user_id: str) -> int:
        return conversation_registry.get_total_unread_count(user_id)

    def publish_messages(self, conversation_id) -> None:
        snapshot_hub.publish(
            messages_topic(conversation_id),
            lambda: self.all_messages(conversation_id),
        )
        messages = MessageSerializer(self.all_messages(conversation_id), many=True).data
        websocket_service.emit_messages_snapshot(conversation_id, list(messages))


# Create singleton instance
message_log = MessageLog()
