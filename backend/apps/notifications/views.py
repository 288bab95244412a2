"""
Notification views.
"""

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from apps.core.authentication import require_user
from . import services
from .serializers import NotificationSerializer


class NotificationsListView(APIView):
    """
    Latest notifications for the caller

    GET /api/notifications?limit=20
    """
    permission_classes = [AllowAny]

    def get(self, request):
        user = require_user(request)
        try:
            limit = max(1, min(int(request.query_params.get('limit', 20)), 100))
        except ValueError:
            limit = 20

        notifications = services.list_notifications(user['user_id'], limit)
        serializer = NotificationSerializer(notifications, many=True)

        return Response({
            'notifications': serializer.data,
            'count': len(serializer.data),
        })


class NotificationUnreadCountView(APIView):
    """
    GET /api/notifications/unread/count
    """
    permission_classes = [AllowAny]

    def get(self, request):
        user = require_user(request)
        return Response({'total': services.get_unread_notification_count(user['user_id'])})


class MarkNotificationReadView(APIView):
    """
    PATCH /api/notifications/:notificationId/read
    """
    permission_classes = [AllowAny]

    def patch(self, request, notification_id):
        user = require_user(request)
        notification = services.mark_notification_as_read(notification_id, user['user_id'])
        return Response({
            'success': True,
            'notification': NotificationSerializer(notification).data,
        })


class MarkAllNotificationsReadView(APIView):
    """
    PATCH /api/notifications/read-all
    """
    permission_classes = [AllowAny]

    def patch(self, request):
        user = require_user(request)
        updated = services.mark_all_notifications_as_read(user['user_id'])
        return Response({'success': True, 'updated': updated})
