"""
Static registry of the permissions each operation requires.
"""

from typing import Dict, Iterable, List, Tuple

from shared.logging import get_logger
from ..scopes.models import Action, Permission, Resource, build_permission, parse_permission


class OperationPermissionRegistry:
    """Maps operation identifiers to the permissions they require."""

    def __init__(self):
        self.logger = get_logger("authz.permission_registry")
        self._operations: Dict[str, Tuple[Permission, ...]] = {}

    def register(self, operation: str, permissions: Iterable[Permission]) -> None:
        """Declare the permissions required by an operation."""
        if operation in self._operations:
            raise ValueError(f"Operation {operation!r} is already registered")

        validated = tuple(build_permission(*parse_permission(p)) for p in permissions)
        self._operations[operation] = validated
        self.logger.debug("Operation registered", operation=operation, permissions=list(validated))

    def get(self, operation: str) -> List[Permission]:
        """Permissions required by an operation; empty when unknown."""
        return list(self._operations.get(operation, ()))

    def resource_actions(self, operation: str) -> List[Tuple[Resource, Action]]:
        return [parse_permission(permission) for permission in self.get(operation)]

    def operations(self) -> List[str]:
        return sorted(self._operations)

    def __contains__(self, operation: str) -> bool:
        return operation in self._operations

    def __len__(self) -> int:
        return len(self._operations)


DEFAULT_OPERATION_PERMISSIONS: Dict[str, List[Permission]] = {
    "me": ["USER:READ"],
    "user": ["USER:READ"],
    "users": ["USER:READ"],
    "team": ["TEAM:READ"],
    "teams": ["TEAM:READ"],
    "cycle": ["CYCLE:READ"],
    "cycles": ["CYCLE:READ"],
    "objective": ["OBJECTIVE:READ"],
    "objectives": ["OBJECTIVE:READ"],
    "keyResult": ["KEY_RESULT:READ"],
    "keyResults": ["KEY_RESULT:READ"],
    "updateKeyResult": ["KEY_RESULT:UPDATE"],
    "keyResultCheckIn": ["KEY_RESULT_CHECK_IN:READ"],
    "createKeyResultCheckIn": ["KEY_RESULT_CHECK_IN:CREATE"],
    "deleteKeyResultCheckIn": ["KEY_RESULT_CHECK_IN:DELETE"],
    "keyResultComment": ["KEY_RESULT_COMMENT:READ"],
    "createKeyResultComment": ["KEY_RESULT_COMMENT:CREATE"],
    "deleteKeyResultComment": ["KEY_RESULT_COMMENT:DELETE"],
    "keyResultCustomList": ["KEY_RESULT_CUSTOM_LIST:READ"],
    "createKeyResultCustomList": ["KEY_RESULT_CUSTOM_LIST:CREATE"],
    "updateKeyResultCustomList": ["KEY_RESULT_CUSTOM_LIST:UPDATE"],
    "deleteKeyResultCustomList": ["KEY_RESULT_CUSTOM_LIST:DELETE"],
    "permissions": ["PERMISSION:READ"],
}


def build_default_registry() -> OperationPermissionRegistry:
    """Registry of the application's operations, built once at startup."""
    registry = OperationPermissionRegistry()
    for operation, permissions in DEFAULT_OPERATION_PERMISSIONS.items():
        registry.register(operation, permissions)

    return registry
