"""
Fulfillment order serializers.
"""

from rest_framework import serializers
from .models import FulfillmentOrder


class FulfillmentOrderSerializer(serializers.ModelSerializer):
    """Serializer for FulfillmentOrder model"""
    price = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    shipping = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)

    class Meta:
        model = FulfillmentOrder
        fields = [
            'id',
            'custom_order_id',
            'item_index',
            'item_id',
            'item_name',
            'item_image',
            'buyer_id',
            'buyer_name',
            'seller_id',
            'seller_name',
            'price',
            'quantity',
            'shipping',
            'total',
            'payment_method',
            'status',
            'created_at',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['id'] = str(instance.id)
        data['custom_order_id'] = str(instance.custom_order_id)
        return data
