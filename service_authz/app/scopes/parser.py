"""
Scoped-permission parser for the Authz Service.

Folds the raw grants of a caller into a dense ceiling: for every resource
and action the broadest constraint granted, or None when nothing matches.
"""

from typing import Iterable, List, Optional, Sequence

from shared.errors import MalformedPermissionError
from shared.logging import get_logger
from .models import (
    Action, ActionScopes, Constraint, Resource, ScopeCeiling, ScopedPermission,
    SCOPED_PERMISSION, broadest_constraint,
)

logger = get_logger("authz.scopes.parser")


def parse_scoped_permissions(grants: Iterable[SCOPED_PERMISSION]) -> List[ScopedPermission]:
    """Parse every grant, failing on the first malformed one."""
    parsed = []
    for grant in grants:
        try:
            parsed.append(ScopedPermission.parse(grant))
        except MalformedPermissionError as e:
            logger.warning("Rejected malformed scoped permission", permission=e.permission, error=e.message)
            raise

    return parsed


def _parse_action_scope(
    resource: Resource,
    action: Action,
    grants: Sequence[ScopedPermission],
) -> Optional[Constraint]:
    matching = [
        grant.constraint for grant in grants
        if grant.resource == resource and grant.action == action
    ]

    return broadest_constraint(matching)


def _action_scopes(resource: Resource, grants: Sequence[ScopedPermission]) -> ActionScopes:
    return {action: _parse_action_scope(resource, action, grants) for action in Action}


def parse_action_scopes_for_resource(
    resource: Resource,
    grants: Iterable[SCOPED_PERMISSION],
) -> ActionScopes:
    """Broadest constraint per action for a single resource."""
    return _action_scopes(Resource(resource), parse_scoped_permissions(grants))


def parse_scope_ceiling(grants: Iterable[SCOPED_PERMISSION]) -> ScopeCeiling:
    """Build the caller's ceiling over every resource and action."""
    parsed = parse_scoped_permissions(grants)
    ceiling = {resource: _action_scopes(resource, parsed) for resource in Resource}

    logger.debug(
        "Parsed scope ceiling",
        grants=len(parsed),
        granted_pairs=sum(
            1 for scopes in ceiling.values() for constraint in scopes.values() if constraint is not None
        ),
    )

    return ceiling


def full_ceiling(constraint: Constraint) -> ScopeCeiling:
    """A ceiling holding ``constraint`` for every resource and action."""
    constraint = Constraint(constraint)
    return {resource: {action: constraint for action in Action} for resource in Resource}


def serialize_ceiling(ceiling: ScopeCeiling) -> dict:
    """Plain-string view of a ceiling (absent entries stay None)."""
    return {
        Resource(resource).value: {
            Action(action).value: (Constraint(constraint).value if constraint is not None else None)
            for action, constraint in scopes.items()
        }
        for resource, scopes in ceiling.items()
    }
