"""
Authz service for the authorization layer.
"""

from typing import Optional

from fastapi import HTTPException

from shared.base_service import BaseService
from shared.config import ServiceConfig
from .context.models import AuthzToken
from .context.pipeline import RequestContextPipeline
from .context.profiles import InMemoryUserProfileStore, UserProfileProvider
from .models import (
    CeilingResponse, OperationEvaluationRequest, OperationEvaluationResponse,
    PermissionsResponse, PolicyEvaluationRequest, PolicyMatrixResponse,
)
from .permissions.drill_up import parse_token_permissions
from .permissions.registry import OperationPermissionRegistry, build_default_registry
from .policies.engine import PolicyEngine
from .scopes.models import Constraint
from .scopes.parser import parse_scope_ceiling, serialize_ceiling


class AuthzService(BaseService):
    """Authz service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        profiles: Optional[UserProfileProvider] = None,
        registry: Optional[OperationPermissionRegistry] = None,
    ):
        super().__init__("authz", 8013, config)

        self.engine = PolicyEngine(self.metrics)
        self.registry = registry or build_default_registry()
        self.profiles = profiles or InMemoryUserProfileStore()
        self.pipeline = RequestContextPipeline(
            self.engine,
            self.registry,
            self.profiles,
            self.config,
            self.metrics,
        )

        self._setup_authz_routes()

    def _setup_authz_routes(self):
        """Set up authz-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "authz",
                "message": "Authorization Layer - Authz Service",
                "version": "1.0.0",
                "god_mode": self.pipeline.god_mode_enabled,
                "operations": len(self.registry),
            }

        @self.app.post("/authz/ceiling", response_model=CeilingResponse)
        async def resolve_ceiling(token: AuthzToken):
            """Resolve the scope ceiling granted by a token."""
            if self.pipeline.god_mode_enabled:
                god_user = self.pipeline.build_god_user()
                return CeilingResponse(subject=god_user.token.subject, scopes=serialize_ceiling(god_user.scopes))

            ceiling = parse_scope_ceiling(token.permissions)
            return CeilingResponse(subject=token.subject, scopes=serialize_ceiling(ceiling))

        @self.app.post("/authz/permissions", response_model=PermissionsResponse)
        async def token_permissions(token: AuthzToken):
            """Unscoped permissions carried by a token."""
            if self.pipeline.god_mode_enabled:
                token = self.pipeline.build_god_user().token

            return PermissionsResponse(subject=token.subject, permissions=parse_token_permissions(token))

        @self.app.post("/authz/policies", response_model=PolicyMatrixResponse)
        async def evaluate_policies(request: PolicyEvaluationRequest):
            """Evaluate a token's ceiling against a required constraint."""
            required_constraint = request.required_constraint
            if self.pipeline.god_mode_enabled:
                # Unrestricted ceiling against the broadest requirement allows everything
                ceiling = self.pipeline.build_god_user().scopes
                required_constraint = Constraint.ANY
            else:
                ceiling = parse_scope_ceiling(request.token.permissions)

            matrix = self.engine.evaluate_policies(ceiling, required_constraint, request.resources)

            return PolicyMatrixResponse(
                required_constraint=required_constraint.value if required_constraint else None,
                policies=self.engine.serialize_matrix(matrix),
            )

        @self.app.post("/authz/operations/{operation}/evaluate", response_model=OperationEvaluationResponse)
        async def evaluate_operation(operation: str, request: OperationEvaluationRequest):
            """Run the request-context pipeline for one operation."""
            if operation not in self.registry and not self.pipeline.god_mode_enabled:
                raise HTTPException(status_code=404, detail=f"Unknown operation {operation!r}")

            user = await self.pipeline.run(
                request.token,
                operation,
                request.resource,
                ownership=request.ownership.to_ownership() if request.ownership else None,
                required_constraint=request.required_constraint,
            )

            return OperationEvaluationResponse(
                operation=operation,
                user_id=user.id,
                state=user.state.value,
                god_mode=user.god_mode,
                constraint={
                    resource.value: (constraint.value if constraint is not None else None)
                    for resource, constraint in user.constraint.items()
                },
                required_constraint=user.required_constraint.value if user.required_constraint else None,
                policies=self.engine.serialize_matrix(user.policies),
            )


def create_app(config: Optional[ServiceConfig] = None, profiles: Optional[UserProfileProvider] = None):
    """Create authz service application."""
    service = AuthzService(config=config, profiles=profiles)
    return service.app


if __name__ == "__main__":
    service = AuthzService()
    service.run()
