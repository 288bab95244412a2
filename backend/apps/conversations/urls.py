"""
Conversation URL configuration.
"""

from django.urls import path
from .views import ConversationsListView, ConversationDetailView

app_name = 'conversations'

urlpatterns = [
    # GET, POST /api/conversations
    path('', ConversationsListView.as_view(), name='list'),

    # GET /api/conversations/:conversationId
    path('<uuid:conversation_id>', ConversationDetailView.as_view(), name='detail'),
]
