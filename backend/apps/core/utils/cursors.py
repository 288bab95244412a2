"""
Opaque keyset cursors.

A cursor names a position in a ``(timestamp, id)`` ordering. Clients treat it
as an opaque string and hand it back to fetch the next page; it is not meant
to be built from message data.
"""

import base64
import binascii
import json
import uuid
from datetime import datetime
from typing import Optional, Tuple

from django.utils.dateparse import parse_datetime

from apps.core.exceptions import ValidationFailed


def encode_cursor(timestamp: datetime, pk) -> str:
    """Encode a keyset position as a URL-safe token."""
    raw = json.dumps([timestamp.isoformat(), str(pk)], separators=(',', ':'))
    return base64.urlsafe_b64encode(raw.encode('utf-8')).decode('ascii').rstrip('=')


def decode_cursor(cursor: str) -> Tuple[datetime, uuid.UUID]:
    """
    Decode a token produced by ``encode_cursor``.

    Raises:
        ValidationFailed: if the token is malformed
    """
    try:
        padded = cursor + '=' * (-len(cursor) % 4)
        timestamp_raw, pk_raw = json.loads(base64.urlsafe_b64decode(padded.encode('ascii')))
        timestamp = parse_datetime(timestamp_raw)
        if timestamp is None:
            raise ValueError(timestamp_raw)
        return timestamp, uuid.UUID(pk_raw)
    except (ValueError, TypeError, binascii.Error, UnicodeError):
        raise ValidationFailed('Invalid pagination cursor', code='INVALID_CURSOR')


def cursor_for(instance, timestamp_field: str) -> Optional[str]:
    """Cursor pointing at ``instance`` in a (timestamp_field, id) ordering."""
    if instance is None:
        return None
    return encode_cursor(getattr(instance, timestamp_field), instance.pk)
