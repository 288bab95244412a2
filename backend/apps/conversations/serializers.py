"""
Conversation serializers for request/response validation.
"""

from rest_framework import serializers
from .models import Conversation


class ConversationSerializer(serializers.ModelSerializer):
    """Serializer for Conversation model"""
    participants = serializers.ListField(child=serializers.CharField(), read_only=True)
    participant_names = serializers.DictField(child=serializers.CharField(), read_only=True)
    unread_count = serializers.DictField(child=serializers.IntegerField(), read_only=True)
    context = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = [
            'id',
            'participants',
            'participant_names',
            'last_message',
            'last_message_at',
            'last_sender_id',
            'unread_count',
            'context',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_context(self, instance):
        return instance.context

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['id'] = str(data['id'])
        return data


class ListingDetailsSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    image = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    shopName = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ConversationContextSerializer(serializers.Serializer):
    """What prompted the chat: a listing, a shop or a user profile"""
    type = serializers.ChoiceField(choices=[c[0] for c in Conversation.CONTEXT_TYPE_CHOICES])
    id = serializers.CharField(max_length=128)
    title = serializers.CharField(max_length=255)
    listingDetails = ListingDetailsSerializer(required=False, allow_null=True)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        details = value.get('listingDetails')
        if details and 'price' in details:
            # Stored in a JSON column
            details['price'] = float(details['price'])
        return value


class StartConversationSerializer(serializers.Serializer):
    """Serializer for finding or creating a conversation"""
    other_user_id = serializers.CharField(max_length=128)
    other_user_name = serializers.CharField(max_length=255, allow_blank=True, default='')
    self_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    context = ConversationContextSerializer(required=False, allow_null=True)
