"""
Unit tests for the request-context enhancement pipeline.
"""

import pytest
from unittest.mock import AsyncMock

from service_authz.app.context.models import AuthzToken, AuthzUser, ContextState
from service_authz.app.context.pipeline import RequestContextPipeline
from service_authz.app.permissions.registry import build_default_registry
from service_authz.app.policies.engine import PolicyEngine
from service_authz.app.policies.relationship import ResourceOwnership
from service_authz.app.scopes.models import Action, Constraint, Policy, Resource
from shared.config import get_config
from shared.errors import (
    AuthenticationError, AuthorizationError, ContextStateError,
    GodModeConfigurationError, MalformedPermissionError,
)
from shared.metrics import MetricsCollector


GOD_MODE_SETTINGS = {
    "god_mode_enabled": True,
    "god_mode_user_id": "god-1",
    "god_mode_authz_sub": "auth0|god",
    "god_mode_team_ids": ["team-root"],
}


class TestRequestContextPipeline:
    """Test cases for RequestContextPipeline."""

    @pytest.fixture
    def metrics(self):
        """Create a metrics collector."""
        return MetricsCollector("authz")

    @pytest.fixture
    def pipeline(self, profile_store, metrics):
        """Create a pipeline with god mode disabled."""
        return RequestContextPipeline(
            PolicyEngine(metrics),
            build_default_registry(),
            profile_store,
            get_config("authz", 8013),
            metrics,
        )

    @pytest.fixture
    def god_pipeline(self, profile_store):
        """Create a pipeline with god mode enabled."""
        return RequestContextPipeline(
            PolicyEngine(),
            build_default_registry(),
            profile_store,
            get_config("authz", 8013, **GOD_MODE_SETTINGS),
        )

    @pytest.mark.asyncio
    async def test_enhance_with_user(self, pipeline, token, user_profile):
        """Stage 1 attaches the profile and the ceiling."""
        user = await pipeline.enhance_with_user(token)

        assert user.state == ContextState.CEILING_RESOLVED
        assert user.profile == user_profile
        assert user.id == "user-1"
        assert user.scopes[Resource.KEY_RESULT][Action.READ] == Constraint.COMPANY
        assert user.scopes[Resource.KEY_RESULT][Action.CREATE] is None

    @pytest.mark.asyncio
    async def test_enhance_with_user_uses_token_subject(self, token, user_profile, metrics):
        """Profiles are looked up by token subject."""
        profiles = AsyncMock()
        profiles.get_user_from_subject = AsyncMock(return_value=user_profile)
        pipeline = RequestContextPipeline(
            PolicyEngine(), build_default_registry(), profiles, get_config("authz", 8013), metrics
        )

        await pipeline.enhance_with_user(token)

        profiles.get_user_from_subject.assert_awaited_once_with("auth0|user-1")
        assert metrics.registry.get_sample_value("ceiling_resolutions_total", {"status": "ok"}) == 1.0

    @pytest.mark.asyncio
    async def test_unknown_subject(self, pipeline):
        """Callers without a profile are not authenticated."""
        with pytest.raises(AuthenticationError):
            await pipeline.enhance_with_user(AuthzToken(subject="auth0|stranger"))

    @pytest.mark.asyncio
    async def test_malformed_grant_fails_closed(self, pipeline, token, metrics):
        """One malformed grant rejects the whole request."""
        bad_token = token.model_copy(update={"permissions": token.permissions + ["KEY_RESULT:READ:PLANET"]})

        with pytest.raises(MalformedPermissionError):
            await pipeline.enhance_with_user(bad_token)

        assert metrics.registry.get_sample_value("ceiling_resolutions_total", {"status": "rejected"}) == 1.0

    @pytest.mark.asyncio
    async def test_enhance_does_not_mutate(self, pipeline, token):
        """Each stage returns a new context."""
        user = await pipeline.enhance_with_user(token)
        enhanced = pipeline.enhance_with_resource_constraint(user, "keyResult")

        assert enhanced is not user
        assert user.state == ContextState.CEILING_RESOLVED
        assert user.constraint == {}

    @pytest.mark.asyncio
    async def test_enhance_with_resource_constraint(self, pipeline, token):
        """Stage 2 attaches the caller's ceiling for the operation's resources."""
        user = await pipeline.enhance_with_user(token)
        user = pipeline.enhance_with_resource_constraint(user, "deleteKeyResultComment")

        assert user.state == ContextState.CONSTRAINT_RESOLVED
        assert user.constraint == {Resource.KEY_RESULT_COMMENT: Constraint.OWNS}

    @pytest.mark.asyncio
    async def test_resource_constraint_without_grant(self, pipeline, token):
        """Operations on ungranted pairs resolve to None."""
        user = await pipeline.enhance_with_user(token)
        user = pipeline.enhance_with_resource_constraint(user, "teams")

        assert user.constraint == {Resource.TEAM: None}

    @pytest.mark.asyncio
    async def test_check_operation_permissions(self, pipeline, token):
        """The coarse gate passes held permissions and blocks missing ones."""
        user = await pipeline.enhance_with_user(token)

        pipeline.check_operation_permissions(user, "keyResult")
        pipeline.check_operation_permissions(user, "unregisteredOperation")
        with pytest.raises(AuthorizationError) as exc_info:
            pipeline.check_operation_permissions(user, "createKeyResultCheckIn")

        assert exc_info.value.details["missing"] == ["KEY_RESULT_CHECK_IN:CREATE"]

    @pytest.mark.asyncio
    async def test_evaluate_with_ownership(self, pipeline, token):
        """Stage 3 resolves the required constraint from the instance."""
        user = await pipeline.enhance_with_user(token)
        user = pipeline.enhance_with_resource_constraint(user, "updateKeyResult")
        user = pipeline.evaluate(
            user,
            Resource.KEY_RESULT,
            ResourceOwnership(owner_id="user-2", team_id="team-1", company_id="company-1"),
        )

        assert user.state == ContextState.POLICY_EVALUATED
        assert user.required_constraint == Constraint.TEAM
        assert user.policies == {
            Resource.KEY_RESULT: {
                Action.CREATE: Policy.DENY,
                Action.READ: Policy.ALLOW,
                Action.UPDATE: Policy.DENY,
                Action.DELETE: Policy.DENY,
            }
        }

    @pytest.mark.asyncio
    async def test_evaluate_owned_instance(self, pipeline, token):
        """Owners may update with an OWNS grant."""
        user = await pipeline.run(
            token, "updateKeyResult", Resource.KEY_RESULT, ResourceOwnership(owner_id="user-1")
        )

        assert user.required_constraint == Constraint.OWNS
        assert user.policies[Resource.KEY_RESULT][Action.UPDATE] == Policy.ALLOW

    @pytest.mark.asyncio
    async def test_evaluate_with_explicit_constraint(self, pipeline, token):
        """An explicit required constraint is used when no ownership is given."""
        user = await pipeline.run(
            token, "keyResult", Resource.KEY_RESULT, required_constraint=Constraint.ANY
        )

        assert user.policies[Resource.KEY_RESULT][Action.READ] == Policy.DENY

    @pytest.mark.asyncio
    async def test_evaluate_without_requirement(self, pipeline, token):
        """Nothing to compare against means every action is denied."""
        user = await pipeline.run(token, "keyResult", Resource.KEY_RESULT)

        assert user.required_constraint is None
        assert set(user.policies[Resource.KEY_RESULT].values()) == {Policy.DENY}

    @pytest.mark.asyncio
    async def test_run_blocks_missing_permission(self, pipeline, token):
        """Pipeline runs stop at the coarse gate."""
        with pytest.raises(AuthorizationError):
            await pipeline.run(token, "deleteKeyResultCheckIn", Resource.KEY_RESULT_CHECK_IN)

    @pytest.mark.asyncio
    async def test_stages_cannot_be_skipped(self, pipeline, token):
        """Evaluating before the constraint stage is rejected."""
        user = await pipeline.enhance_with_user(token)

        with pytest.raises(ContextStateError):
            pipeline.evaluate(user, Resource.KEY_RESULT, required_constraint=Constraint.TEAM)

    def test_stages_cannot_repeat(self, token):
        """A context only moves forward."""
        user = AuthzUser.from_token(token).advance(ContextState.CEILING_RESOLVED)

        with pytest.raises(ContextStateError):
            user.advance(ContextState.CEILING_RESOLVED)
        with pytest.raises(ContextStateError):
            user.advance(ContextState.RAW_TOKEN)

    @pytest.mark.asyncio
    async def test_instance_policies(self, pipeline, token):
        """Further instances are decided without moving the context."""
        user = await pipeline.run(token, "keyResultComment", Resource.KEY_RESULT_COMMENT,
                                  ResourceOwnership(owner_id="user-1"))

        policies = pipeline.instance_policies(
            user, Resource.KEY_RESULT_COMMENT, ResourceOwnership(team_id="team-7", company_id="company-1")
        )

        assert policies[Action.READ] == Policy.ALLOW
        assert policies[Action.CREATE] == Policy.DENY
        assert policies[Action.DELETE] == Policy.DENY
        assert user.state == ContextState.POLICY_EVALUATED

    @pytest.mark.asyncio
    async def test_god_mode(self, god_pipeline):
        """God mode allows every action on every resource regardless of token."""
        user = await god_pipeline.run(
            AuthzToken(subject="auth0|anyone", permissions=[]),
            "deleteKeyResultComment",
            Resource.KEY_RESULT_COMMENT,
            ResourceOwnership(owner_id="someone-else"),
        )

        assert user.god_mode is True
        assert user.id == "god-1"
        assert user.team_ids == ("team-root",)
        assert user.state == ContextState.POLICY_EVALUATED
        assert set(user.policies) == set(Resource)
        assert all(p == Policy.ALLOW for policies in user.policies.values() for p in policies.values())

    @pytest.mark.asyncio
    async def test_god_mode_skips_profile_lookup(self, token):
        """The bypass runs before any profile lookup or token parsing."""
        profiles = AsyncMock()
        pipeline = RequestContextPipeline(
            PolicyEngine(),
            build_default_registry(),
            profiles,
            get_config("authz", 8013, **GOD_MODE_SETTINGS),
        )
        broken_token = token.model_copy(update={"permissions": ["not-a-permission"]})

        user = await pipeline.enhance_with_user(broken_token)

        assert user.god_mode is True
        profiles.get_user_from_subject.assert_not_called()

    def test_god_mode_requires_identity(self, profile_store):
        """Enabling god mode without an identity fails at construction."""
        with pytest.raises(GodModeConfigurationError):
            RequestContextPipeline(
                PolicyEngine(),
                build_default_registry(),
                profile_store,
                get_config("authz", 8013, god_mode_enabled=True),
            )

    @pytest.mark.asyncio
    async def test_god_mode_context_not_shared(self, god_pipeline):
        """Mutating one god context leaves the next request untouched."""
        first = await god_pipeline.run(
            AuthzToken(subject="auth0|first", permissions=[]),
            "deleteKeyResultComment",
            Resource.KEY_RESULT_COMMENT,
        )
        instance = god_pipeline.instance_policies(
            first, Resource.KEY_RESULT_COMMENT, ResourceOwnership(owner_id="someone-else")
        )
        instance[Action.DELETE] = Policy.DENY
        first.policies[Resource.KEY_RESULT_COMMENT][Action.DELETE] = Policy.DENY
        first.scopes[Resource.KEY_RESULT_COMMENT][Action.DELETE] = None

        second = await god_pipeline.run(
            AuthzToken(subject="auth0|second", permissions=[]),
            "deleteKeyResultComment",
            Resource.KEY_RESULT_COMMENT,
        )

        assert second is not first
        assert second.policies[Resource.KEY_RESULT_COMMENT][Action.DELETE] == Policy.ALLOW
        assert second.scopes[Resource.KEY_RESULT_COMMENT][Action.DELETE] == Constraint.ANY
        assert god_pipeline.instance_policies(
            second, Resource.KEY_RESULT_COMMENT, ResourceOwnership(owner_id="someone-else")
        )[Action.DELETE] == Policy.ALLOW
