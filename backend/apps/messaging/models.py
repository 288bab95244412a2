"""
Message models.

Table: messages
"""

import uuid
from django.db import models
from apps.conversations.models import Conversation


class Message(models.Model):
    """
    Chat message. Immutable after creation except for ``read``.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    text = models.TextField()
    sender_id = models.CharField(max_length=128)
    sender_name = models.CharField(max_length=255, blank=True, default='')
    sent_at = models.DateTimeField()
    read = models.BooleanField(default=False)

    class Meta:
        db_table = 'messages'
        indexes = [
            models.Index(fields=['conversation', 'sent_at', 'id'], name='messages_conv_sent_idx'),
            models.Index(fields=['conversation', 'read'], name='messages_conv_read_idx'),
        ]
        ordering = ['sent_at', 'id']

    def __str__(self):
        return f'{self.sender_name or self.sender_id}: {self.text[:50]}'

    def is_unread_for(self, user_id: str) -> bool:
        """Check if this message still counts as unread for ``user_id``"""
        return not self.read and self.sender_id != str(user_id)
