"""
Message serializers for request/response validation.
"""

from django.conf import settings
from rest_framework import serializers
from .models import Message


class MessageSerializer(serializers.ModelSerializer):
    """Serializer for Message model"""

    class Meta:
        model = Message
        fields = [
            'id',
            'conversation_id',
            'text',
            'sender_id',
            'sender_name',
            'sent_at',
            'read',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)

        # Convert UUID fields to strings for JSON serialization
        data['id'] = str(instance.id)
        data['conversation_id'] = str(instance.conversation_id)

        return data


class SendMessageSerializer(serializers.Serializer):
    """Serializer for sending a message"""
    text = serializers.CharField(required=True, trim_whitespace=True, allow_blank=False)

    def validate_text(self, value):
        if len(value) > settings.MESSAGE_MAX_LENGTH:
            raise serializers.ValidationError(
                f'Message cannot be longer than {settings.MESSAGE_MAX_LENGTH} characters'
            )
        return value


class MessagePageQuerySerializer(serializers.Serializer):
    """Query parameters for reading a page of history"""
    limit = serializers.IntegerField(required=False, min_value=1, max_value=200)
    cursor = serializers.CharField(required=False, allow_blank=True)
