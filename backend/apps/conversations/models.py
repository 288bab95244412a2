"""
Conversation models.

Tables: conversations, conversation_participants
"""

import uuid
from django.db import models


def participant_key_for(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of participants."""
    first, second = sorted([str(user_a), str(user_b)])
    return f'{first}:{second}'


class Conversation(models.Model):
    """
    Two-party chat thread with a denormalized summary of its last message.

    At most one conversation exists per unordered participant pair; the
    unique ``participant_key`` enforces it.
    """

    CONTEXT_LISTING = 'listing'
    CONTEXT_SHOP = 'shop'
    CONTEXT_USER = 'user'
    CONTEXT_TYPE_CHOICES = [
        (CONTEXT_LISTING, 'Listing'),
        (CONTEXT_SHOP, 'Shop'),
        (CONTEXT_USER, 'User'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    participant_key = models.CharField(max_length=255, unique=True, editable=False)
    last_message = models.TextField(blank=True, default='')
    last_message_at = models.DateTimeField(null=True, blank=True)
    last_sender_id = models.CharField(max_length=128, blank=True, default='')
    context_type = models.CharField(max_length=20, choices=CONTEXT_TYPE_CHOICES, null=True, blank=True)
    context_id = models.CharField(max_length=128, null=True, blank=True)
    context_title = models.CharField(max_length=255, null=True, blank=True)
    listing_details = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'conversations'
        indexes = [
            models.Index(fields=['-last_message_at', '-id'], name='conversati_activity_idx'),
        ]
        ordering = ['-last_message_at', '-id']

    def __str__(self):
        return f'Conversation {self.participant_key}'

    @property
    def participants(self):
        return [p.user_id for p in self.participant_rows.all()]

    @property
    def participant_names(self):
        return {p.user_id: p.display_name for p in self.participant_rows.all()}

    @property
    def unread_count(self):
        return {p.user_id: p.unread_count for p in self.participant_rows.all()}

    @property
    def context(self):
        if not self.context_type:
            return None
        return {
            'type': self.context_type,
            'id': self.context_id,
            'title': self.context_title,
            'listingDetails': self.listing_details,
        }

    def other_participant(self, user_id: str):
        for p in self.participant_rows.all():
            if p.user_id != str(user_id):
                return p.user_id
        return None

    def has_participant(self, user_id: str) -> bool:
        return str(user_id) in self.participants


class ConversationParticipant(models.Model):
    """
    One side of a conversation: name snapshot and unread counter.

    The counter lives on its own row so a send can bump it with a single
    atomic UPDATE.
    """
    id = models.BigAutoField(primary_key=True)
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='participant_rows'
    )
    user_id = models.CharField(max_length=128)
    display_name = models.CharField(max_length=255, blank=True, default='')
    unread_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'conversation_participants'
        unique_together = ['conversation', 'user_id']
        indexes = [
            models.Index(fields=['user_id'], name='conv_part_user_idx'),
        ]
        ordering = ['id']

    def __str__(self):
        return f'{self.display_name or self.user_id} in {self.conversation_id}'
