"""
Django admin configuration for custom_orders app.
"""

from django.contrib import admin
from .models import CustomOrder, CustomOrderItem


class CustomOrderItemInline(admin.TabularInline):
    model = CustomOrderItem
    extra = 0
    readonly_fields = ('position', 'item_id', 'name', 'quantity', 'unit_price', 'item_type')


@admin.register(CustomOrder)
class CustomOrderAdmin(admin.ModelAdmin):
    """Admin interface for CustomOrder model"""
    list_display = ('id', 'seller_name', 'buyer_name', 'grand_total', 'payment_method', 'status', 'valid_until', 'created_at')
    list_filter = ('status', 'payment_method', 'item_type', 'created_at')
    search_fields = ('id', 'seller_id', 'buyer_id', 'seller_name', 'buyer_name')
    readonly_fields = ('id', 'total_amount', 'grand_total', 'created_at', 'updated_at')
    inlines = [CustomOrderItemInline]
    ordering = ('-created_at',)
