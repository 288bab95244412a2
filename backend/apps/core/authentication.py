"""
Caller identity helpers for DRF views.

The JWT middleware attaches ``user_jwt`` to the request; views call
``require_user`` to get it or fail with 401.
"""

from .exceptions import AppError


class Unauthorized(AppError):
    status_code = 401
    code = 'UNAUTHORIZED'


def require_user(request) -> dict:
    """
    Return the authenticated caller ({'user_id', 'email', 'name'}).

    Raises:
        Unauthorized: if no valid bearer token was presented
    """
    user_jwt = getattr(request, 'user_jwt', None)
    if not user_jwt or not user_jwt.get('user_id'):
        raise Unauthorized('Authentication required')
    return user_jwt


def display_name(user_jwt: dict, fallback: str = 'User') -> str:
    """Best display name for the caller, as the chat UI shows it."""
    return user_jwt.get('name') or user_jwt.get('email') or fallback
