"""
Custom order serializers.
"""

from rest_framework import serializers
from .models import CustomOrder, CustomOrderItem, ITEM_TYPE_CHOICES


class CustomOrderItemSerializer(serializers.ModelSerializer):
    """Serializer for CustomOrderItem model"""
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False, read_only=True)

    class Meta:
        model = CustomOrderItem
        fields = [
            'position',
            'item_id',
            'name',
            'description',
            'quantity',
            'unit_price',
            'line_total',
            'image_url',
            'item_type',
        ]
        read_only_fields = fields


class CustomOrderSerializer(serializers.ModelSerializer):
    """Serializer for CustomOrder model with its items"""
    items = CustomOrderItemSerializer(many=True, read_only=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    grand_total = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = CustomOrder
        fields = [
            'id',
            'seller_id',
            'seller_name',
            'buyer_id',
            'buyer_name',
            'conversation_id',
            'item_type',
            'items',
            'total_amount',
            'shipping_cost',
            'grand_total',
            'payment_method',
            'status',
            'notes',
            'valid_until',
            'is_expired',
            'buyer_address',
            'buyer_phone',
            'tracking_number',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_is_expired(self, obj):
        return obj.is_expired()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['id'] = str(instance.id)
        data['conversation_id'] = str(instance.conversation_id)
        return data


class ProposalItemSerializer(serializers.Serializer):
    """
    One proposed line. Numbers stay loose here; ``normalize_proposal`` owns
    the business rules and reports them per item.
    """
    item_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    name = serializers.CharField(max_length=255, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    quantity = serializers.IntegerField(required=False, default=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    image_url = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)
    item_type = serializers.ChoiceField(choices=ITEM_TYPE_CHOICES, required=False)


class CreateCustomOrderSerializer(serializers.Serializer):
    """Serializer for a seller's new proposal"""
    buyer_id = serializers.CharField(max_length=128)
    buyer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    conversation_id = serializers.UUIDField()
    items = ProposalItemSerializer(many=True, allow_empty=False)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    payment_method = serializers.ChoiceField(choices=CustomOrder.PAYMENT_METHOD_CHOICES)
    item_type = serializers.ChoiceField(choices=ITEM_TYPE_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notify_recipient = serializers.ChoiceField(choices=['seller', 'buyer'], required=False)
    announce = serializers.BooleanField(required=False, default=True)


class DeliveryDetailsSerializer(serializers.Serializer):
    """Serializer for the buyer's acceptance"""
    buyer_address = serializers.CharField()
    buyer_phone = serializers.CharField(max_length=50)


class UpdateBuyerSerializer(serializers.Serializer):
    buyer_name = serializers.CharField(max_length=255, required=False, allow_blank=True)


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CustomOrder.STATUS_CHOICES)
    tracking_number = serializers.CharField(max_length=100, required=False)
    buyer_address = serializers.CharField(required=False)
    buyer_phone = serializers.CharField(max_length=50, required=False)
