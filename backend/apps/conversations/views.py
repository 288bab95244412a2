"""
Conversation views (controllers).
"""

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny

from apps.core.authentication import require_user, display_name
from .serializers import ConversationSerializer, StartConversationSerializer
from .services import conversation_registry


class ConversationsListView(APIView):
    """
    GET  /api/conversations?limit=20&cursor=...
        The caller's conversations, most recent activity first
    POST /api/conversations
        Find or create the conversation with another user
    """
    permission_classes = [AllowAny]

    def get(self, request):
        user = require_user(request)
        try:
            limit = max(1, min(int(request.query_params.get('limit', 20)), 100))
        except ValueError:
            limit = 20

        page = conversation_registry.list_conversations(
            user['user_id'],
            page_size=limit,
            cursor=request.query_params.get('cursor') or None,
        )
        serializer = ConversationSerializer(page.conversations, many=True)

        return Response({
            'conversations': serializer.data,
            'count': len(serializer.data),
            'cursor': page.cursor,
            'hasMore': page.has_more,
            'totalUnread': conversation_registry.get_total_unread_count(user['user_id']),
        })

    def post(self, request):
        user = require_user(request)
        serializer = StartConversationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        conversation_id = conversation_registry.get_or_create_conversation(
            self_id=user['user_id'],
            other_id=data['other_user_id'],
            self_name=data.get('self_name') or display_name(user),
            other_name=data['other_user_name'],
            context=data.get('context'),
        )
        conversation = conversation_registry.get_conversation(conversation_id, user['user_id'])

        return Response({
            'conversationId': conversation_id,
            'conversation': ConversationSerializer(conversation).data,
        }, status=status.HTTP_200_OK)


class ConversationDetailView(APIView):
    """
    GET /api/conversations/:conversationId
    """
    permission_classes = [AllowAny]

    def get(self, request, conversation_id):
        user = require_user(request)
        conversation = conversation_registry.get_conversation(conversation_id, user['user_id'])
        return Response(ConversationSerializer(conversation).data)
