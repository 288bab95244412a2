"""
Django admin configuration for messaging app.
"""

from django.contrib import admin
from .models import Message


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model"""
    list_display = (
        'sender_name',
        'conversation',
        'read',
        'sent_at',
        'text_preview'
    )
    list_filter = ('read', 'sent_at')
    search_fields = ('sender_name', 'sender_id', 'text')
    readonly_fields = ('id', 'sent_at')
    ordering = ('-sent_at',)

    def text_preview(self, obj):
        """Display first 50 characters of the text"""
        return obj.text[:50] + '...' if len(obj.text) > 50 else obj.text
    text_preview.short_description = 'Text'
