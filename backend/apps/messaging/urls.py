"""
Message URL configuration.
"""

from django.urls import path
from .views import (
    ConversationMessagesView,
    SendMessageView,
    MarkConversationReadView,
    UnreadCountView,
)

app_name = 'messaging'

urlpatterns = [
    # GET /api/messages/unread/count
    path('unread/count', UnreadCountView.as_view(), name='unread_count'),

    # GET /api/messages/:conversationId
    path('<uuid:conversation_id>', ConversationMessagesView.as_view(), name='conversation_messages'),

    # POST /api/messages/:conversationId/send
    path('<uuid:conversation_id>/send', SendMessageView.as_view(), name='send'),

    # PATCH /api/messages/conversation/:conversationId/read
    path('conversation/<uuid:conversation_id>/read', MarkConversationReadView.as_view(), name='mark_conversation_read'),
]
