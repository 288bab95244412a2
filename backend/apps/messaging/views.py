"""
Message views (controllers) for message operations.
"""

from adrf.views import APIView as AsyncAPIView
from asgiref.sync import sync_to_async
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny

from apps.conversations.services import conversation_registry
from apps.core.authentication import require_user, display_name
from .serializers import MessageSerializer, SendMessageSerializer, MessagePageQuerySerializer
from .services import message_log


class ConversationMessagesView(APIView):
    """
    Get a page of messages for a conversation, oldest first

    GET /api/messages/:conversationId?limit=50
        newest page
    GET /api/messages/:conversationId?limit=50&cursor=...
        the page before ``cursor``
    """
    permission_classes = [AllowAny]

    def get(self, request, conversation_id):
        user = require_user(request)
        query = MessagePageQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        limit = query.validated_data.get('limit')
        cursor = query.validated_data.get('cursor')

        # Raises NotFound for non-participants
        conversation_registry.get_conversation(conversation_id, user['user_id'])

        if cursor:
            page = message_log.get_messages_paginated(conversation_id, limit or 50, cursor)
        else:
            page = message_log.get_recent_messages(conversation_id, limit)

        serializer = MessageSerializer(page.messages, many=True)
        return Response({
            'messages': serializer.data,
            'count': len(serializer.data),
            'cursor': page.cursor,
            'hasMore': page.has_more,
        })


class SendMessageView(AsyncAPIView):
    """
    Send a message in a conversation

    POST /api/messages/:conversationId/send
    The recipient is the caller's counterpart in the conversation.
    """
    permission_classes = [AllowAny]

    async def post(self, request, conversation_id):
        user = require_user(request)
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        @sync_to_async
        def send():
            conversation = conversation_registry.get_conversation(conversation_id, user['user_id'])
            return message_log.send(
                conversation.id,
                user['user_id'],
                display_name(user),
                serializer.validated_data['text'],
                conversation.other_participant(user['user_id']),
            )

        message = await send()

        return Response({
            'success': True,
            'message': MessageSerializer(message).data,
        }, status=status.HTTP_201_CREATED)


class MarkConversationReadView(APIView):
    """
    Mark all messages in a conversation as read for the caller

    PATCH /api/messages/conversation/:conversationId/read
    """
    permission_classes = [AllowAny]

    def patch(self, request, conversation_id):
        user = require_user(request)
        updated = message_log.mark_messages_as_read(conversation_id, user['user_id'])
        return Response({
            'success': True,
            'updated': updated,
        })


class UnreadCountView(APIView):
    """
    Get unread message counts for the caller

    GET /api/messages/unread/count
    """
    permission_classes = [AllowAny]

    def get(self, request):
        user = require_user(request)
        return Response({
            'total': message_log.get_total_unread_count(user['user_id']),
            'byConversation': conversation_registry.get_unread_counts(user['user_id']),
        })
