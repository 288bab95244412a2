"""
Notification models.

Table: notifications
"""

import uuid
from django.db import models


class Notification(models.Model):
    """
    In-app notification shown in a user's inbox dropdown.
    """

    TYPE_CUSTOM_ORDER_REQUEST = 'custom_order_request'
    TYPE_CUSTOM_ORDER_ACCEPTED = 'custom_order_accepted'
    TYPE_CUSTOM_ORDER_DECLINED = 'custom_order_declined'
    TYPE_NEW_MESSAGE = 'new_message'

    TYPE_CHOICES = [
        (TYPE_CUSTOM_ORDER_REQUEST, 'Custom Order Request'),
        (TYPE_CUSTOM_ORDER_ACCEPTED, 'Custom Order Accepted'),
        (TYPE_CUSTOM_ORDER_DECLINED, 'Custom Order Declined'),
        (TYPE_NEW_MESSAGE, 'New Message'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=128)
    type = models.CharField(max_length=50, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        indexes = [
            models.Index(fields=['user_id', '-created_at'], name='notif_user_created_idx'),
            models.Index(fields=['user_id', 'is_read'], name='notif_user_read_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f'[{self.type}] {self.title} -> {self.user_id}'
