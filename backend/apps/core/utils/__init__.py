"""
Core utility functions.
"""

from .cursors import (
    encode_cursor,
    decode_cursor,
    cursor_for,
)
from .ids import check_user_id

__all__ = [
    'encode_cursor',
    'decode_cursor',
    'cursor_for',
    'check_user_id',
]
