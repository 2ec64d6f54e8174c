"""
Coarse permission checks: scoped grants reduced to ``RESOURCE:ACTION``.
"""

from typing import Collection, Iterable, List, Optional

from ..context.models import AuthzToken
from ..scopes.models import PERMISSION_SEPARATOR, Permission, SCOPED_PERMISSION
from ..scopes.parser import parse_scoped_permissions


def drill_up_scoped_permissions(scoped_permissions: Iterable[SCOPED_PERMISSION]) -> List[Permission]:
    """Strip the trailing constraint, keeping order and duplicates."""
    return [
        PERMISSION_SEPARATOR.join(scoped_permission.split(PERMISSION_SEPARATOR)[:-1])
        for scoped_permission in scoped_permissions
    ]


def user_has_permission(
    user_permissions: Collection[Permission],
    required_permissions: Optional[Iterable[Permission]],
) -> bool:
    """True when every required permission was granted (vacuously for none)."""
    if not required_permissions:
        return True

    granted = set(user_permissions)
    return all(permission in granted for permission in required_permissions)


def parse_token_permissions(token: AuthzToken) -> List[Permission]:
    """Drilled-up permissions carried by a token; malformed grants raise."""
    scoped_permissions = token.permissions or []
    parse_scoped_permissions(scoped_permissions)
    return drill_up_scoped_permissions(scoped_permissions)
