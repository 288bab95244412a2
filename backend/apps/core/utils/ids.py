"""
User ID checks.

User IDs come from the identity provider and are used verbatim in
participant keys and Channels group names (``user_<id>``), so they are held
to the group-name alphabet.
"""

import re

from apps.core.exceptions import ValidationFailed

# Channels group names: ASCII alphanumerics, hyphens, underscores and periods,
# under 100 characters including the ``user_`` prefix
USER_ID_PATTERN = re.compile(r'[A-Za-z0-9._-]{1,94}')


def check_user_id(value, field: str = 'user_id') -> str:
    """
    Return ``value`` as a stripped string.

    Raises:
        ValidationFailed: if it is blank or uses characters outside the
            group-name alphabet
    """
    user_id = str(value or '').strip()
    if not USER_ID_PATTERN.fullmatch(user_id):
        raise ValidationFailed(
            f'{field} must be 1-94 characters of letters, digits, ".", "_" or "-"',
            code='INVALID_USER_ID',
            details={field: user_id[:100]},
        )
    return user_id
