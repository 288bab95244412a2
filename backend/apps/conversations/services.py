"""
Conversation registry.

Finds or creates the single conversation shared by two participants and
serves conversation lists and unread totals.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum
from django.utils import timezone

from apps.core.exceptions import NotFound, ValidationFailed
from apps.core.services import snapshot_hub
from apps.core.utils import check_user_id, cursor_for, decode_cursor
from apps.websocket.services import websocket_service
from .models import Conversation, ConversationParticipant, participant_key_for
from .serializers import ConversationSerializer

logger = logging.getLogger(__name__)


@dataclass
class ConversationPage:
    conversations: List[Conversation] = field(default_factory=list)
    cursor: Optional[str] = None
    has_more: bool = False


def conversations_topic(user_id: str) -> str:
    return f'conversations:{user_id}'


class ConversationRegistry:
    """
    Conversation lookups keyed by the unordered participant pair.
    """

    def _base_queryset(self):
        return Conversation.objects.prefetch_related('participant_rows')

    def get_or_create_conversation(
        self,
        self_id: str,
        other_id: str,
        self_name: str,
        other_name: str,
        context: Optional[Dict] = None
    ) -> str:
        """
        Return the ID of the conversation between two users, creating it on
        first contact.

        Args:
            self_id: Caller's user ID
            other_id: The other participant's user ID
            self_name: Caller's display name (snapshot)
            other_name: Other participant's display name (snapshot)
            context: Optional {'type', 'id', 'title', 'listingDetails'} describing
                what prompted the chat; only used when the conversation is new

        Returns:
            Conversation ID as a string

        Raises:
            ValidationFailed: if either ID is blank or malformed, or both are the
                same user
        """
        self_id = check_user_id(self_id, 'self_id')
        other_id = check_user_id(other_id, 'other_id')
        if self_id == other_id:
            raise ValidationFailed('Cannot start a conversation with yourself', code='SELF_CONVERSATION')

        key = participant_key_for(self_id, other_id)

        existing = Conversation.objects.filter(participant_key=key).values_list('id', flat=True).first()
        if existing:
            return str(existing)

        context = context or {}
        try:
            with transaction.atomic():
                conversation = Conversation.objects.create(
                    participant_key=key,
                    last_message='',
                    last_message_at=timezone.now(),
                    last_sender_id='',
                    context_type=context.get('type'),
                    context_id=context.get('id'),
                    context_title=context.get('title'),
                    listing_details=context.get('listingDetails') or None,
                )
                ConversationParticipant.objects.bulk_create([
                    ConversationParticipant(
                        conversation=conversation,
                        user_id=self_id,
                        display_name=self_name or '',
                        unread_count=0,
                    ),
                    ConversationParticipant(
                        conversation=conversation,
                        user_id=other_id,
                        display_name=other_name or '',
                        unread_count=0,
                    ),
                ])
        except IntegrityError:
            # Lost a first-contact race; the other insert is the conversation
            winner = Conversation.objects.filter(participant_key=key).values_list('id', flat=True).first()
            if winner is None:
                raise
            logger.info(f'[conversations] Reused concurrently created conversation {winner}')
            return str(winner)

        logger.info(f'[conversations] Created conversation {conversation.id} for {key}')
        self.publish_conversations(self_id, other_id)
        return str(conversation.id)

    def get_conversation(self, conversation_id, user_id: Optional[str] = None) -> Conversation:
        """
        Fetch a conversation, optionally checking that ``user_id`` takes part.

        Raises:
            NotFound: if missing, or not visible to ``user_id``
        """
        try:
            conversation = self._base_queryset().get(id=conversation_id)
        except (Conversation.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFound('Conversation not found', code='CONVERSATION_NOT_FOUND')

        if user_id is not None and not conversation.has_participant(user_id):
            raise NotFound('Conversation not found or access denied', code='CONVERSATION_NOT_FOUND')

        return conversation

    def _user_conversations(self, user_id: str):
        return self._base_queryset().filter(participant_rows__user_id=str(user_id)).distinct()

    def list_conversations(
        self,
        user_id: str,
        page_size: int = 20,
        cursor: Optional[str] = None
    ) -> ConversationPage:
        """
        Page through a user's conversations, most recent activity first.
        """
        queryset = self._user_conversations(user_id).order_by('-last_message_at', '-id')
        if cursor:
            before_at, before_id = decode_cursor(cursor)
            queryset = queryset.filter(
                Q(last_message_at__lt=before_at)
                | Q(last_message_at=before_at, id__lt=before_id)
            )

        rows = list(queryset[:page_size + 1])
        has_more = len(rows) > page_size
        rows = rows[:page_size]

        return ConversationPage(
            conversations=rows,
            cursor=cursor_for(rows[-1], 'last_message_at') if rows else None,
            has_more=has_more,
        )

    def all_conversations(self, user_id: str) -> List[Conversation]:
        return list(self._user_conversations(user_id).order_by('-last_message_at', '-id'))

    def subscribe_to_conversations(self, user_id: str, callback: Callable[[List[Conversation]], None]):
        """
        Deliver the user's full conversation list now and after every change.

        Returns:
            Unsubscribe function
        """
        return snapshot_hub.subscribe(
            conversations_topic(user_id),
            lambda: self.all_conversations(user_id),
            callback,
        )

    def get_total_unread_count(self, user_id: str) -> int:
        total = ConversationParticipant.objects.filter(
            user_id=str(user_id)
        ).aggregate(total=Sum('unread_count'))['total']
        return total or 0

    def get_unread_counts(self, user_id: str) -> Dict[str, int]:
        """Per-conversation unread counts for a user, non-zero only."""
        rows = ConversationParticipant.objects.filter(
            user_id=str(user_id),
            unread_count__gt=0
        ).values_list('conversation_id', 'unread_count')
        return {str(conversation_id): count for conversation_id, count in rows}

    def publish_conversations(self, *user_ids: str) -> None:
        """Push fresh conversation lists to in-process and WebSocket subscribers."""
        for user_id in user_ids:
            snapshot_hub.publish(
                conversations_topic(user_id),
                lambda user_id=user_id: self.all_conversations(user_id),
            )
            conversations = ConversationSerializer(self.all_conversations(user_id), many=True).data
            websocket_service.emit_conversations_snapshot(user_id, list(conversations))

    def publish_unread_state(self, user_id: str) -> None:
        """Tell the user's open views to refresh their unread badges."""
        websocket_service.emit_unread_count_update(
            user_id,
            self.get_unread_counts(user_id),
            self.get_total_unread_count(user_id),
        )


# Create singleton instance
conversation_registry = ConversationRegistry()
