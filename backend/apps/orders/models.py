"""
Fulfillment order models.

Table: orders
"""

import uuid
from decimal import Decimal

from django.db import models

from apps.custom_orders.models import CustomOrder


class FulfillmentOrder(models.Model):
    """
    One trackable order per custom order line item.

    ``(custom_order, item_index)`` is unique so that re-running
    materialization never duplicates a line.
    """

    PAYMENT_COD = 'cod'
    PAYMENT_BANK_TRANSFER = 'bankTransfer'
    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_COD, 'Cash on Delivery'),
        (PAYMENT_BANK_TRANSFER, 'Bank Transfer'),
    ]

    STATUS_CHOICES = CustomOrder.STATUS_CHOICES

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    custom_order = models.ForeignKey(
        CustomOrder,
        on_delete=models.PROTECT,
        related_name='fulfillment_orders'
    )
    item_index = models.PositiveIntegerField()
    item_id = models.CharField(max_length=128)
    item_name = models.CharField(max_length=255)
    item_image = models.CharField(max_length=1000, blank=True, default='')
    buyer_id = models.CharField(max_length=128)
    buyer_name = models.CharField(max_length=255, blank=True, default='')
    buyer_address = models.TextField(null=True, blank=True)
    buyer_phone = models.CharField(max_length=50, null=True, blank=True)
    seller_id = models.CharField(max_length=128)
    seller_name = models.CharField(max_length=255, blank=True, default='')
    price = models.DecimalField(max_digits=12, decimal_places=2)
    quantity = models.PositiveIntegerField()
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=CustomOrder.STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'orders'
        unique_together = ['custom_order', 'item_index']
        indexes = [
            models.Index(fields=['buyer_id', '-created_at'], name='orders_buyer_idx'),
            models.Index(fields=['seller_id', '-created_at'], name='orders_seller_idx'),
        ]
        ordering = ['custom_order', 'item_index']

    def __str__(self):
        return f'Order {self.id}: {self.quantity} x {self.item_name} [{self.status}]'
