"""
Scope vocabulary for the Authz Service.

Constraints, resources, actions and policies, the canonical constraint
order and the wire form of scoped permissions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from shared.errors import InvalidConstraintError, MalformedPermissionError


class Constraint(str, Enum):
    """How broad a grant or a requirement is."""
    ANY = "ANY"
    COMPANY = "COMPANY"
    TEAM = "TEAM"
    OWNS = "OWNS"


# Broadest first. Comparisons go through this tuple only, so adding a level
# means inserting it here.
CONSTRAINT_ORDER: Tuple[Constraint, ...] = (
    Constraint.ANY,
    Constraint.COMPANY,
    Constraint.TEAM,
    Constraint.OWNS,
)


class Resource(str, Enum):
    """Domain resources guarded by scoped permissions."""
    PERMISSION = "PERMISSION"
    USER = "USER"
    TEAM = "TEAM"
    CYCLE = "CYCLE"
    OBJECTIVE = "OBJECTIVE"
    KEY_RESULT = "KEY_RESULT"
    KEY_RESULT_CHECK_IN = "KEY_RESULT_CHECK_IN"
    KEY_RESULT_COMMENT = "KEY_RESULT_COMMENT"
    KEY_RESULT_CUSTOM_LIST = "KEY_RESULT_CUSTOM_LIST"


class Action(str, Enum):
    """CRUD actions."""
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Policy(str, Enum):
    """Policy decision."""
    ALLOW = "ALLOW"
    DENY = "DENY"


PERMISSION_SEPARATOR = ":"

# "RESOURCE:ACTION" and "RESOURCE:ACTION:CONSTRAINT"
Permission = str
SCOPED_PERMISSION = str

ActionScopes = Dict[Action, Optional[Constraint]]
ScopeCeiling = Dict[Resource, ActionScopes]
ActionPolicies = Dict[Action, Policy]
PolicyMatrix = Dict[Resource, ActionPolicies]


def constraint_index(constraint: Constraint) -> int:
    """Position of a constraint in CONSTRAINT_ORDER (lower is broader)."""
    try:
        return CONSTRAINT_ORDER.index(constraint)
    except ValueError:
        raise InvalidConstraintError(constraint) from None


def is_constraint_higher_or_equal(base: Constraint, candidate: Optional[Constraint]) -> bool:
    """Check whether ``candidate`` is at least as broad as ``base``."""
    if candidate is None:
        return False

    return constraint_index(candidate) <= constraint_index(base)


def broadest_constraint(constraints: Iterable[Constraint]) -> Optional[Constraint]:
    """Pick the broadest constraint, None when nothing is given."""
    unique = set(constraints)
    if not unique:
        return None

    return min(unique, key=constraint_index)


def _parse_segment(enum_cls, segment: str, raw: str):
    try:
        return enum_cls(segment)
    except ValueError:
        raise MalformedPermissionError(raw, f"Unknown {enum_cls.__name__.lower()} {segment!r}") from None


def parse_permission(raw: Permission) -> Tuple[Resource, Action]:
    """Validate a ``RESOURCE:ACTION`` permission."""
    if not isinstance(raw, str):
        raise MalformedPermissionError(repr(raw), "Permission must be a string")

    segments = raw.split(PERMISSION_SEPARATOR)
    if len(segments) != 2 or not all(segments):
        raise MalformedPermissionError(raw, "Expected resource:action")

    return _parse_segment(Resource, segments[0], raw), _parse_segment(Action, segments[1], raw)


@dataclass(frozen=True)
class ScopedPermission:
    """A grant binding a resource, an action and a constraint."""
    resource: Resource
    action: Action
    constraint: Constraint

    @classmethod
    def parse(cls, raw: SCOPED_PERMISSION) -> "ScopedPermission":
        """Parse the ``RESOURCE:ACTION:CONSTRAINT`` wire form."""
        if not isinstance(raw, str):
            raise MalformedPermissionError(repr(raw), "Scoped permission must be a string")

        segments = raw.split(PERMISSION_SEPARATOR)
        if len(segments) != 3 or not all(segments):
            raise MalformedPermissionError(raw, "Expected resource:action:constraint")

        resource_segment, action_segment, constraint_segment = segments
        return cls(
            resource=_parse_segment(Resource, resource_segment, raw),
            action=_parse_segment(Action, action_segment, raw),
            constraint=_parse_segment(Constraint, constraint_segment, raw),
        )

    @property
    def permission(self) -> Permission:
        return build_permission(self.resource, self.action)

    def __str__(self) -> str:
        return PERMISSION_SEPARATOR.join(
            (self.resource.value, self.action.value, self.constraint.value)
        )


def build_permission(resource: Resource, action: Action) -> Permission:
    """Join a resource and an action into a permission string."""
    return f"{Resource(resource).value}{PERMISSION_SEPARATOR}{Action(action).value}"
