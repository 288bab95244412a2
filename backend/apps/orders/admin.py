"""
Django admin configuration for orders app.
"""

from django.contrib import admin
from .models import FulfillmentOrder


@admin.register(FulfillmentOrder)
class FulfillmentOrderAdmin(admin.ModelAdmin):
    """Admin interface for FulfillmentOrder model"""
    list_display = ('item_name', 'buyer_name', 'seller_name', 'quantity', 'total', 'status', 'created_at')
    list_filter = ('status', 'payment_method', 'created_at')
    search_fields = ('item_name', 'buyer_id', 'seller_id', 'custom_order__id')
    readonly_fields = ('id', 'custom_order', 'item_index', 'created_at')
    ordering = ('-created_at',)
