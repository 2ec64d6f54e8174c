"""
Shared error handling for the authorization layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AuthzException(Exception):
    """Base exception for authorization layer services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(AuthzException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class AuthorizationError(AuthzException):
    """Authorization-related errors."""

    status_code = 403

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "AUTHORIZATION_ERROR"):
        super().__init__(code, message, details)


class MalformedPermissionError(AuthorizationError):
    """A scoped permission string does not follow resource:action:constraint."""

    def __init__(self, permission: str, reason: str = "Malformed permission"):
        super().__init__(
            f"{reason}: {permission!r}",
            details={"permission": permission},
            code="MALFORMED_PERMISSION",
        )
        self.permission = permission


class ValidationError(AuthzException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class InvalidConstraintError(AuthzException):
    """A constraint outside the canonical order reached the policy engine."""

    status_code = 500

    def __init__(self, constraint: Any):
        super().__init__(
            "INVALID_CONSTRAINT",
            f"Constraint {constraint!r} is not part of the constraint order",
            details={"constraint": str(constraint)},
        )
        self.constraint = constraint


class ContextStateError(AuthzException):
    """Request context moved out of order through the enhancement stages."""

    status_code = 500

    def __init__(self, current: str, target: str):
        super().__init__(
            "CONTEXT_STATE_ERROR",
            f"Cannot move request context from {current} to {target}",
            details={"current": current, "target": target},
        )


class GodModeConfigurationError(AuthzException):
    """God mode is enabled without a break-glass identity."""

    status_code = 500

    def __init__(self, message: str = "God mode enabled without a configured identity",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__("GOD_MODE_CONFIGURATION_ERROR", message, details)
