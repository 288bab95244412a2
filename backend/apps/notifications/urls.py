"""
Notification URL configuration.
"""

from django.urls import path
from .views import (
    NotificationsListView,
    NotificationUnreadCountView,
    MarkNotificationReadView,
    MarkAllNotificationsReadView,
)

app_name = 'notifications'

urlpatterns = [
    # GET /api/notifications
    path('', NotificationsListView.as_view(), name='list'),

    # GET /api/notifications/unread/count
    path('unread/count', NotificationUnreadCountView.as_view(), name='unread_count'),

    # PATCH /api/notifications/read-all
    path('read-all', MarkAllNotificationsReadView.as_view(), name='mark_all_read'),

    # PATCH /api/notifications/:notificationId/read
    path('<uuid:notification_id>/read', MarkNotificationReadView.as_view(), name='mark_read'),
]
