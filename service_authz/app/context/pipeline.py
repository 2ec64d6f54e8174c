"""
Request-context enhancement pipeline for the Authz Service.

Every inbound operation moves its caller context through
RAW_TOKEN -> CEILING_RESOLVED -> CONSTRAINT_RESOLVED -> POLICY_EVALUATED.
With god mode enabled the pipeline hands out a fixed, fully privileged
caller that is already POLICY_EVALUATED.
"""

from contextlib import nullcontext
from typing import Optional

from shared.config import BaseConfig
from shared.errors import AuthorizationError, GodModeConfigurationError, MalformedPermissionError
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector
from ..permissions.drill_up import parse_token_permissions, user_has_permission
from ..permissions.registry import OperationPermissionRegistry
from ..policies.engine import PolicyEngine
from ..policies.relationship import ResourceOwnership, resolve_required_constraint
from ..scopes.models import (
    Action, ActionPolicies, Constraint, Resource, ScopedPermission,
)
from ..scopes.parser import full_ceiling, parse_scope_ceiling
from .models import AuthzToken, AuthzUser, ContextState, UserProfile
from .profiles import UserProfileProvider


class RequestContextPipeline:
    """Builds and augments the caller context of one operation at a time."""

    def __init__(
        self,
        engine: PolicyEngine,
        registry: OperationPermissionRegistry,
        profiles: UserProfileProvider,
        config: BaseConfig,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.engine = engine
        self.registry = registry
        self.profiles = profiles
        self.metrics = metrics
        self.logger = get_logger("authz.pipeline")

        # Validated here so a broken setup fails at startup
        self.god_profile: Optional[UserProfile] = (
            self._build_god_profile(config) if config.god_mode_enabled else None
        )
        if self.god_profile is not None:
            self.logger.warning(
                "God mode enabled", user_id=self.god_profile.id, authz_sub=self.god_profile.authz_sub
            )

    @property
    def god_mode_enabled(self) -> bool:
        return self.god_profile is not None

    def _build_god_profile(self, config: BaseConfig) -> UserProfile:
        if not config.god_mode_user_id or not config.god_mode_authz_sub:
            raise GodModeConfigurationError(
                details={
                    "god_mode_user_id": config.god_mode_user_id,
                    "god_mode_authz_sub": config.god_mode_authz_sub,
                }
            )

        return UserProfile(
            id=config.god_mode_user_id,
            authz_sub=config.god_mode_authz_sub,
            first_name=config.god_mode_first_name,
            role=config.god_mode_role,
            picture=config.god_mode_picture,
            team_ids=tuple(config.god_mode_team_ids),
            company_ids=tuple(config.god_mode_company_ids),
        )

    def build_god_user(self) -> AuthzUser:
        """A fresh, fully privileged context for one operation."""
        profile = self.god_profile
        token = AuthzToken(
            subject=profile.authz_sub,
            permissions=[
                str(ScopedPermission(resource, action, Constraint.ANY))
                for resource in Resource for action in Action
            ],
        )
        scopes = full_ceiling(Constraint.ANY)

        return AuthzUser(
            token=token,
            profile=profile,
            scopes=scopes,
            constraint={resource: Constraint.ANY for resource in Resource},
            policies=self.engine.evaluate_policies(scopes, Constraint.ANY),
            required_constraint=Constraint.ANY,
            state=ContextState.POLICY_EVALUATED,
            god_mode=True,
        )

    async def enhance_with_user(self, token: AuthzToken) -> AuthzUser:
        """Stage 1: load the caller profile and resolve the scope ceiling."""
        if self.god_profile is not None:
            self.logger.warning("God mode bypass", token_subject=token.subject)
            if self.metrics:
                self.metrics.increment_counter("god_mode_bypass_total")
            return self.build_god_user()

        user = AuthzUser.from_token(token)

        with self._time_stage("ceiling"):
            profile = await self.profiles.get_user_from_subject(token.subject)
            try:
                scopes = parse_scope_ceiling(token.permissions)
            except MalformedPermissionError:
                self._count_ceiling("rejected")
                raise

        self._count_ceiling("ok")
        set_user_context(user_id=profile.id)

        enhanced = user.advance(ContextState.CEILING_RESOLVED, profile=profile, scopes=scopes)
        self.logger.debug("Selected user for current request", user_id=profile.id)

        return enhanced

    def check_operation_permissions(self, user: AuthzUser, operation: str) -> None:
        """Coarse gate: the caller must hold every permission the operation declares."""
        if user.god_mode:
            return

        granted = parse_token_permissions(user.token)
        required = self.registry.get(operation)
        if not user_has_permission(granted, required):
            missing = sorted(set(required) - set(granted))
            self.logger.info("Operation permissions missing", operation=operation, missing=missing)
            raise AuthorizationError(
                f"Missing permissions for operation {operation!r}",
                details={"operation": operation, "missing": missing},
            )

    def enhance_with_resource_constraint(self, user: AuthzUser, operation: str) -> AuthzUser:
        """Stage 2: attach the caller's ceiling for each resource the operation touches."""
        if user.god_mode:
            return user

        set_user_context(operation=operation)
        constraint = {
            resource: user.scopes.get(resource, {}).get(action)
            for resource, action in self.registry.resource_actions(operation)
        }

        enhanced = user.advance(ContextState.CONSTRAINT_RESOLVED, constraint=constraint)
        self.logger.debug(
            "Enhanced request with user constraint for resource",
            operation=operation,
            constraint={resource.value: getattr(c, "value", None) for resource, c in constraint.items()},
        )

        return enhanced

    def evaluate(
        self,
        user: AuthzUser,
        resource: Resource,
        ownership: Optional[ResourceOwnership] = None,
        required_constraint: Optional[Constraint] = None,
    ) -> AuthzUser:
        """Stage 3: decide every action on one resource instance.

        The required constraint comes from ``ownership`` when given,
        otherwise from ``required_constraint``; with neither, every action
        is denied.
        """
        if user.god_mode:
            return user

        if ownership is not None:
            required_constraint = resolve_required_constraint(user.profile, ownership)

        with self._time_stage("policy"):
            policies = self.engine.evaluate_policies(user.scopes, required_constraint, [resource])

        enhanced = user.advance(
            ContextState.POLICY_EVALUATED,
            policies=policies,
            required_constraint=required_constraint,
        )
        self.logger.debug(
            "Evaluated policies for resource instance",
            resource=Resource(resource).value,
            required_constraint=getattr(required_constraint, "value", None),
        )

        return enhanced

    def instance_policies(
        self,
        user: AuthzUser,
        resource: Resource,
        ownership: ResourceOwnership,
    ) -> ActionPolicies:
        """Decisions for one more instance without moving the context."""
        resource = Resource(resource)
        if user.god_mode:
            return dict(user.policies[resource])

        required_constraint = resolve_required_constraint(user.profile, ownership)
        return self.engine.build_action_policies(user.scopes, required_constraint, resource)

    async def run(
        self,
        token: AuthzToken,
        operation: str,
        resource: Resource,
        ownership: Optional[ResourceOwnership] = None,
        required_constraint: Optional[Constraint] = None,
    ) -> AuthzUser:
        """All stages for one operation on one resource instance."""
        user = await self.enhance_with_user(token)
        self.check_operation_permissions(user, operation)
        user = self.enhance_with_resource_constraint(user, operation)

        return self.evaluate(user, resource, ownership, required_constraint)

    def _time_stage(self, stage: str):
        if self.metrics:
            return self.metrics.time_operation("pipeline_stage_duration_seconds", stage=stage)
        return nullcontext()

    def _count_ceiling(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("ceiling_resolutions_total", status=status)
