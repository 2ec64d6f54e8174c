"""
Request and response models for the Authz Service API.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .context.models import AuthzToken
from .policies.relationship import ResourceOwnership
from .scopes.models import Constraint, Resource


class OwnershipModel(BaseModel):
    """Ownership of the target resource instance."""
    owner_id: Optional[str] = Field(None, description="Owning user ID")
    team_id: Optional[str] = Field(None, description="Owning team ID")
    company_id: Optional[str] = Field(None, description="Owning company ID")

    def to_ownership(self) -> ResourceOwnership:
        return ResourceOwnership(owner_id=self.owner_id, team_id=self.team_id, company_id=self.company_id)


class PolicyEvaluationRequest(BaseModel):
    """Request model for a policy matrix evaluation."""
    token: AuthzToken = Field(..., description="Verified token claims")
    required_constraint: Optional[Constraint] = Field(None, description="Constraint the instance requires")
    resources: Optional[List[Resource]] = Field(None, description="Resources to evaluate (all when omitted)")


class OperationEvaluationRequest(BaseModel):
    """Request model for running the full pipeline for one operation."""
    token: AuthzToken = Field(..., description="Verified token claims")
    resource: Resource = Field(..., description="Target resource kind")
    ownership: Optional[OwnershipModel] = Field(None, description="Target instance ownership")
    required_constraint: Optional[Constraint] = Field(None, description="Explicit required constraint")


class CeilingResponse(BaseModel):
    """Response model for a resolved scope ceiling."""
    subject: str
    scopes: Dict[str, Dict[str, Optional[str]]]


class PermissionsResponse(BaseModel):
    """Response model for drilled-up permissions."""
    subject: str
    permissions: List[str]


class PolicyMatrixResponse(BaseModel):
    """Response model for a policy matrix."""
    required_constraint: Optional[str]
    policies: Dict[str, Dict[str, str]]


class OperationEvaluationResponse(BaseModel):
    """Response model for a pipeline run."""
    operation: str
    user_id: Optional[str]
    state: str
    god_mode: bool
    constraint: Dict[str, Optional[str]]
    required_constraint: Optional[str]
    policies: Dict[str, Dict[str, str]]
