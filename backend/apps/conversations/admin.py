"""
Django admin configuration for conversations app.
"""

from django.contrib import admin
from .models import Conversation, ConversationParticipant


class ConversationParticipantInline(admin.TabularInline):
    model = ConversationParticipant
    extra = 0
    readonly_fields = ('user_id', 'display_name', 'unread_count')


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model"""
    list_display = (
        'participant_key',
        'context_type',
        'context_title',
        'last_message_at',
        'created_at'
    )
    list_filter = ('context_type', 'last_message_at', 'created_at')
    search_fields = ('participant_key', 'context_title', 'last_message')
    readonly_fields = ('id', 'participant_key', 'created_at', 'updated_at')
    inlines = [ConversationParticipantInline]
    ordering = ('-last_message_at',)

    fieldsets = (
        ('Conversation Information', {
            'fields': ('id', 'participant_key')
        }),
        ('Context', {
            'fields': ('context_type', 'context_id', 'context_title', 'listing_details')
        }),
        ('Last Message', {
            'fields': ('last_message', 'last_sender_id', 'last_message_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )
