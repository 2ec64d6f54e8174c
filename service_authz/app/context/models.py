"""
Caller context models for the Authz Service.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from shared.errors import ContextStateError
from ..scopes.models import Constraint, PolicyMatrix, Resource, ScopeCeiling, SCOPED_PERMISSION


class AuthzToken(BaseModel):
    """Claims of an already verified identity token."""

    model_config = ConfigDict(populate_by_name=True)

    issuer: Optional[str] = Field(None, alias="iss", description="Token issuer")
    subject: str = Field(..., alias="sub", description="Caller subject")
    audience: List[str] = Field(default_factory=list, alias="aud", description="Token audiences")
    issued_at: Optional[int] = Field(None, alias="iat", description="Issued at (epoch seconds)")
    expires_at: Optional[int] = Field(None, alias="exp", description="Expires at (epoch seconds)")
    authorized_party: Optional[str] = Field(None, alias="azp", description="Authorized party")
    scope: str = Field("", description="OAuth scope string")
    permissions: List[SCOPED_PERMISSION] = Field(default_factory=list, description="Scoped permission grants")


@dataclass(frozen=True)
class UserProfile:
    """Persisted caller profile with its team memberships."""
    id: str
    authz_sub: str
    first_name: Optional[str] = None
    role: Optional[str] = None
    picture: Optional[str] = None
    team_ids: Tuple[str, ...] = ()
    company_ids: Tuple[str, ...] = ()


class ContextState(str, Enum):
    """Stages a caller context moves through during one operation."""
    RAW_TOKEN = "RAW_TOKEN"
    CEILING_RESOLVED = "CEILING_RESOLVED"
    CONSTRAINT_RESOLVED = "CONSTRAINT_RESOLVED"
    POLICY_EVALUATED = "POLICY_EVALUATED"


CONTEXT_STATE_ORDER: Tuple[ContextState, ...] = (
    ContextState.RAW_TOKEN,
    ContextState.CEILING_RESOLVED,
    ContextState.CONSTRAINT_RESOLVED,
    ContextState.POLICY_EVALUATED,
)


@dataclass(frozen=True)
class AuthzUser:
    """Per-operation projection of a token and a caller profile.

    Each enhancement stage returns a new instance through ``advance``; an
    instance is never changed in place.
    """
    token: AuthzToken
    profile: Optional[UserProfile] = None
    scopes: ScopeCeiling = field(default_factory=dict)
    constraint: Dict[Resource, Optional[Constraint]] = field(default_factory=dict)
    policies: PolicyMatrix = field(default_factory=dict)
    required_constraint: Optional[Constraint] = None
    state: ContextState = ContextState.RAW_TOKEN
    god_mode: bool = False

    @classmethod
    def from_token(cls, token: AuthzToken) -> "AuthzUser":
        return cls(token=token)

    @property
    def id(self) -> Optional[str]:
        return self.profile.id if self.profile else None

    @property
    def team_ids(self) -> Tuple[str, ...]:
        return self.profile.team_ids if self.profile else ()

    @property
    def company_ids(self) -> Tuple[str, ...]:
        return self.profile.company_ids if self.profile else ()

    def advance(self, target: ContextState, **changes) -> "AuthzUser":
        """Move exactly one stage forward."""
        current_index = CONTEXT_STATE_ORDER.index(self.state)
        if CONTEXT_STATE_ORDER.index(target) != current_index + 1:
            raise ContextStateError(self.state.value, target.value)

        return replace(self, state=target, **changes)
