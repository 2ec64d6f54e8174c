"""
Policy evaluation engine for the Authz Service.
"""

from typing import Iterable, Mapping, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..scopes.models import (
    Action, ActionPolicies, Constraint, Policy, PolicyMatrix, Resource, ScopeCeiling,
    constraint_index,
)


class PolicyEngine:
    """Compares a caller's ceiling against a required constraint."""

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("authz.policy_engine")
        self.metrics = metrics

    def evaluate_policies(
        self,
        ceiling: ScopeCeiling,
        required_constraint: Optional[Constraint],
        resources: Optional[Iterable[Resource]] = None,
    ) -> PolicyMatrix:
        """Build the ALLOW/DENY matrix for the requested resources.

        A resource or action missing from the ceiling is denied, as is
        every action when no required constraint is given.
        """
        if required_constraint is not None:
            # Fail before producing any decision
            constraint_index(required_constraint)

        selected = list(Resource) if resources is None else [Resource(r) for r in resources]
        matrix = {
            resource: self.build_action_policies(ceiling, required_constraint, resource)
            for resource in selected
        }

        self.logger.debug(
            "Evaluated policies",
            required_constraint=getattr(required_constraint, "value", required_constraint),
            resources=[resource.value for resource in selected],
        )

        return matrix

    def build_action_policies(
        self,
        ceiling: ScopeCeiling,
        required_constraint: Optional[Constraint],
        resource: Resource,
    ) -> ActionPolicies:
        """Decisions for every action on one resource."""
        scopes: Mapping[Action, Optional[Constraint]] = ceiling.get(resource) or {}
        policies = {}

        for action in Action:
            allowed = self._is_covered(required_constraint, scopes.get(action))
            policies[action] = Policy.ALLOW if allowed else Policy.DENY

            if self.metrics:
                self.metrics.record_policy_decision(resource.value, action.value, policies[action].value)

        return policies

    def _is_covered(self, required: Optional[Constraint], granted: Optional[Constraint]) -> bool:
        """A grant covers a requirement when it is at least as broad."""
        if required is None or granted is None:
            return False

        return constraint_index(required) >= constraint_index(granted)

    @staticmethod
    def deny_all_policies(policies: ActionPolicies) -> ActionPolicies:
        """Same actions, every one denied."""
        return {action: Policy.DENY for action in policies}

    @staticmethod
    def is_allowed(matrix: PolicyMatrix, resource: Resource, action: Action) -> bool:
        """Look up a single decision; anything missing is a deny."""
        return matrix.get(resource, {}).get(action) == Policy.ALLOW

    @staticmethod
    def serialize_matrix(matrix: PolicyMatrix) -> dict:
        """Plain-string view of a policy matrix."""
        return {
            Resource(resource).value: {
                Action(action).value: Policy(policy).value for action, policy in policies.items()
            }
            for resource, policies in matrix.items()
        }
