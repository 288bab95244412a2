"""
Shared fixtures for the test suite.

Runs against config.settings_test: SQLite, in-memory channel layer and
eager Celery, so no external services are needed.
"""

from datetime import timedelta
from decimal import Decimal

import jwt
import pytest
from channels.layers import channel_layers
from django.conf import settings
from django.utils import timezone
from rest_framework.test import APIClient

from apps.conversations.services import conversation_registry
from apps.core.services import snapshot_hub
from apps.websocket.services import websocket_service


SELLER_ID = 'seller-1'
BUYER_ID = 'buyer-1'


@pytest.fixture(autouse=True)
def fresh_realtime_state():
    """Each test gets an empty snapshot hub and its own in-memory channel layer."""
    snapshot_hub.clear()
    channel_layers.backends = {}
    websocket_service._channel_layer = None
    yield
    snapshot_hub.clear()


def make_token(user_id, email=None, name=None, expires_in=timedelta(hours=1)):
    payload = {
        'userId': user_id,
        'email': email or f'{user_id}@example.com',
        'exp': timezone.now() + expires_in,
    }
    if name:
        payload['name'] = name
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    """APIClient authenticated as the given user."""
    def _client(user_id, name=None):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {make_token(user_id, name=name)}')
        return client
    return _client


@pytest.fixture
def conversation_id(db):
    return conversation_registry.get_or_create_conversation(BUYER_ID, SELLER_ID, 'Nimal', 'Craft Shop')


@pytest.fixture
def bag_items():
    return [{'item_id': 'bag-1', 'name': 'Handmade Bag', 'quantity': 1, 'unit_price': Decimal('1500')}]
