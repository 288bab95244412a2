"""
URL configuration for the marketplace messaging service.
"""

import logging

from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from django.db import connection, DatabaseError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint

    GET /health
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
    except DatabaseError as e:
        logger.error(f'Health check failed: {e}')
        return JsonResponse({
            'status': 'error',
            'error': 'Service unavailable',
            'details': str(e)
        }, status=503)

    return JsonResponse({
        'status': 'ok',
        'services': {
            'database': 'connected',
        }
    })


urlpatterns = [
    path('admin/', admin.site.urls),

    # Health check
    path('health', health_check, name='health_check'),

    # API routes
    path('api/conversations/', include('apps.conversations.urls')),
    path('api/messages/', include('apps.messaging.urls')),
    path('api/custom-orders/', include('apps.custom_orders.urls')),
    path('api/notifications/', include('apps.notifications.urls')),
]
