"""
Custom order models.

Tables: custom_orders, custom_order_items
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from apps.conversations.models import Conversation


ITEM_TYPE_PHYSICAL = 'physical'
ITEM_TYPE_DIGITAL = 'digital'
ITEM_TYPE_CHOICES = [
    (ITEM_TYPE_PHYSICAL, 'Physical'),
    (ITEM_TYPE_DIGITAL, 'Digital'),
]


class CustomOrder(models.Model):
    """
    Seller-authored, time-boxed offer of priced items made inside a conversation.

    PENDING -> ACCEPTED -> PAID -> SHIPPED -> DELIVERED, with CANCELLED
    reachable from any state that is not DELIVERED or CANCELLED.
    """

    STATUS_PENDING = 'PENDING'
    STATUS_ACCEPTED = 'ACCEPTED'
    STATUS_PAID = 'PAID'
    STATUS_SHIPPED = 'SHIPPED'
    STATUS_DELIVERED = 'DELIVERED'
    STATUS_CANCELLED = 'CANCELLED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_PAID, 'Paid'),
        (STATUS_SHIPPED, 'Shipped'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    TERMINAL_STATUSES = (STATUS_DELIVERED, STATUS_CANCELLED)

    PAYMENT_COD = 'COD'
    PAYMENT_BANK_TRANSFER = 'BANK_TRANSFER'
    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_COD, 'Cash on Delivery'),
        (PAYMENT_BANK_TRANSFER, 'Bank Transfer'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller_id = models.CharField(max_length=128)
    seller_name = models.CharField(max_length=255, blank=True, default='')
    buyer_id = models.CharField(max_length=128)
    buyer_name = models.CharField(max_length=255, blank=True, default='')
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.PROTECT,
        related_name='custom_orders'
    )
    item_type = models.CharField(max_length=20, choices=ITEM_TYPE_CHOICES, default=ITEM_TYPE_PHYSICAL)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    shipping_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    grand_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(null=True, blank=True)
    valid_until = models.DateTimeField()
    buyer_address = models.TextField(null=True, blank=True)
    buyer_phone = models.CharField(max_length=50, null=True, blank=True)
    tracking_number = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'custom_orders'
        indexes = [
            models.Index(fields=['buyer_id', '-created_at'], name='custom_ord_buyer_idx'),
            models.Index(fields=['seller_id', '-created_at'], name='custom_ord_seller_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f'Custom order {self.id} [{self.status}] {self.seller_name} -> {self.buyer_name}'

    def is_expired(self, now=None) -> bool:
        """Expired once the current time is past ``valid_until``"""
        now = now or timezone.now()
        return now > self.valid_until

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def has_digital_items(self) -> bool:
        return self.item_type == ITEM_TYPE_DIGITAL or any(
            item.item_type == ITEM_TYPE_DIGITAL for item in self.items.all()
        )

    @property
    def items_summary(self) -> str:
        return ', '.join(item.name for item in self.items.all())


class CustomOrderItem(models.Model):
    """
    One priced line of a custom order, kept in the order the seller listed it.
    """
    id = models.BigAutoField(primary_key=True)
    custom_order = models.ForeignKey(
        CustomOrder,
        on_delete=models.CASCADE,
        related_name='items'
    )
    position = models.PositiveIntegerField()
    item_id = models.CharField(max_length=128)
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    image_url = models.CharField(max_length=1000, null=True, blank=True)
    item_type = models.CharField(max_length=20, choices=ITEM_TYPE_CHOICES, default=ITEM_TYPE_PHYSICAL)

    class Meta:
        db_table = 'custom_order_items'
        unique_together = ['custom_order', 'position']
        ordering = ['position']

    def __str__(self):
        return f'{self.quantity} x {self.name}'

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity
