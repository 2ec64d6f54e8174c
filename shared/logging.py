"""
Structured logging for the authorization layer.

Every event carries the service name (first segment of the logger name)
and, while a request is in flight, its request id, caller and operation.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
operation_var: ContextVar[Optional[str]] = ContextVar('operation', default=None)

_CORRELATION_VARS = (
    ("request_id", request_id_var),
    ("user_id", user_id_var),
    ("operation", operation_var),
)


def add_request_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach service name and correlation ids to a log event."""
    service, _, component = event_dict.get("logger", "").partition(".")
    if component:
        event_dict["service"] = service

    for key, var in _CORRELATION_VARS:
        value = var.get()
        if value:
            event_dict[key] = value

    return event_dict


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure JSON logging for a service."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            add_request_context,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id, generating one when the caller sent none."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_user_context(user_id: Optional[str] = None, operation: Optional[str] = None):
    """Bind the resolved caller and operation to the current request."""
    if user_id:
        user_id_var.set(user_id)
    if operation:
        operation_var.set(operation)


def clear_context():
    for _, var in _CORRELATION_VARS:
        var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
