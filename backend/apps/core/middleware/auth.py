"""
JWT Authentication middleware.

Tokens are issued by the marketplace's identity provider; this service only
verifies them and exposes the caller as ``request.user_jwt``.
"""

import jwt
from django.conf import settings
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin


PUBLIC_PATHS = [
    '/health',
    '/admin/',
]


def decode_token(token: str) -> dict:
    """
    Verify a bearer token and return the caller identity.

    Raises:
        jwt.ExpiredSignatureError, jwt.InvalidTokenError
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM]
    )
    user_id = payload.get('userId')
    if not user_id:
        raise jwt.InvalidTokenError('Token has no userId claim')

    return {
        'user_id': str(user_id),
        'email': payload.get('email'),
        'name': payload.get('name') or payload.get('displayName'),
    }


class JWTAuthenticationMiddleware(MiddlewareMixin):
    """
    Middleware to authenticate JWT tokens
    """

    def process_request(self, request):
        """
        Extract and verify JWT token from Authorization header
        Attaches user info to request if token is valid
        """
        request.user_jwt = None

        if any(request.path.startswith(path) for path in PUBLIC_PATHS):
            return None

        # Get token from Authorization header
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')

        if not auth_header:
            # Allow request to continue (will be caught by the views)
            return None

        # Extract token (Bearer TOKEN format)
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != 'bearer':
            return JsonResponse({
                'error': {
                    'code': 'INVALID_TOKEN_FORMAT',
                    'message': 'Authorization header must be in format: Bearer <token>',
                    'details': {},
                    'retryable': False,
                }
            }, status=401)

        try:
            request.user_jwt = decode_token(parts[1])

        except jwt.ExpiredSignatureError:
            return JsonResponse({
                'error': {
                    'code': 'TOKEN_EXPIRED',
                    'message': 'Access token has expired',
                    'details': {},
                    'retryable': False,
                }
            }, status=403)

        except jwt.InvalidTokenError:
            return JsonResponse({
                'error': {
                    'code': 'INVALID_TOKEN',
                    'message': 'Invalid access token',
                    'details': {},
                    'retryable': False,
                }
            }, status=403)

        return None
