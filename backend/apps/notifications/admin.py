"""
Django admin configuration for notifications app.
"""

from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Admin interface for Notification model"""
    list_display = ('title', 'user_id', 'type', 'is_read', 'created_at')
    list_filter = ('type', 'is_read', 'created_at')
    search_fields = ('user_id', 'title', 'message')
    readonly_fields = ('id', 'created_at')
    ordering = ('-created_at',)
