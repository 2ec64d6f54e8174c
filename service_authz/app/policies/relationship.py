"""
Resolves how a resource instance relates to the caller.

The result is the constraint an instance requires: a caller needs a grant
at least that broad to act on it.
"""

from dataclasses import dataclass
from typing import Optional

from ..context.models import UserProfile
from ..scopes.models import Constraint


@dataclass(frozen=True)
class ResourceOwnership:
    """Ownership data of one resource instance, loaded by the caller."""
    owner_id: Optional[str] = None
    team_id: Optional[str] = None
    company_id: Optional[str] = None


def resolve_required_constraint(profile: Optional[UserProfile], ownership: ResourceOwnership) -> Constraint:
    """Narrowest relationship between the caller and the instance."""
    if profile is None:
        return Constraint.ANY

    if ownership.owner_id is not None and ownership.owner_id == profile.id:
        return Constraint.OWNS

    if ownership.team_id is not None and ownership.team_id in profile.team_ids:
        return Constraint.TEAM

    if ownership.company_id is not None and ownership.company_id in profile.company_ids:
        return Constraint.COMPANY

    return Constraint.ANY
