"""
Translates a caller's ceiling into a data-access filter.

Repositories use the scope to restrict queries to owned rows, team rows,
company rows, or nothing at all.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..context.models import AuthzUser
from ..scopes.models import Action, Constraint, Resource
from .relationship import ResourceOwnership


@dataclass(frozen=True)
class QueryScope:
    """Row filter derived from one (resource, action) ceiling entry."""
    constraint: Constraint
    user_id: Optional[str] = None
    team_ids: Tuple[str, ...] = ()
    company_ids: Tuple[str, ...] = ()

    @property
    def unrestricted(self) -> bool:
        return self.constraint == Constraint.ANY

    def matches(self, ownership: ResourceOwnership) -> bool:
        """Whether a row with this ownership passes the filter."""
        if self.constraint == Constraint.ANY:
            return True
        if self.constraint == Constraint.COMPANY:
            return ownership.company_id is not None and ownership.company_id in self.company_ids
        if self.constraint == Constraint.TEAM:
            return ownership.team_id is not None and ownership.team_id in self.team_ids

        return ownership.owner_id is not None and ownership.owner_id == self.user_id


def build_query_scope(user: AuthzUser, resource: Resource, action: Action) -> Optional[QueryScope]:
    """Filter for the caller's grant on (resource, action); None when nothing is granted."""
    constraint = user.scopes.get(Resource(resource), {}).get(Action(action))
    if constraint is None:
        return None

    return QueryScope(
        constraint=constraint,
        user_id=user.id,
        team_ids=user.team_ids,
        company_ids=user.company_ids,
    )
