"""Unified exception hierarchy for scopegate.

Every error raised by the package inherits from ScopeGateError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- HTTP and gRPC status mapping for consuming handlers

Usage in handlers:
    from scopegate.exceptions import (
        AccessDeniedError,
        ScopeGateError,
        get_http_status,
    )

    try:
        decision = service.decide(request)
    except ScopeGateError as e:
        return error_response(get_http_status(e), e.code, e.message)

Storage driver errors (SQLAlchemy, connection failures) are deliberately NOT
part of this hierarchy: they propagate unchanged so an outage is never
reported as "no access".
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "ScopeGateError",
    "ConfigurationError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "AccessDeniedError",
    "InvalidScopeError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # Transport helpers
    "get_http_status",
    "get_grpc_status_code",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class ScopeGateError(Exception):
    """Base exception for scopegate.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "CONFLICT").
        message: Human-readable error description.
        http_status: Status a REST handler should answer with.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"
    http_status: int = 500

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(ScopeGateError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"
    message: str = "Invalid configuration"


class ValidationError(ScopeGateError):
    """Malformed request (empty update, inverted validity window, ...)."""

    code: str = "VALIDATION_ERROR"
    message: str = "Invalid request"
    http_status: int = 400


class ConflictError(ScopeGateError):
    """An active assignment with the same (principal, role, tier, context) exists."""

    code: str = "CONFLICT"
    message: str = "Assignment already exists"
    http_status: int = 409


class NotFoundError(ScopeGateError):
    """Assignment is missing or already soft-deleted."""

    code: str = "NOT_FOUND"
    message: str = "Assignment not found"
    http_status: int = 404


class AccessDeniedError(ScopeGateError):
    """An explicitly requested scope lies outside the resolved grant."""

    code: str = "ACCESS_DENIED"
    message: str = "Requested scope is not accessible"
    http_status: int = 403


class InvalidScopeError(ScopeGateError):
    """A context id cannot be placed in the hierarchy of the principal's organization."""

    code: str = "INVALID_SCOPE"
    message: str = "Context cannot be validated against the hierarchy"
    http_status: int = 422


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[ScopeGateError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[ScopeGateError]] = {}

    def register(self, code: str, error_cls: type[ScopeGateError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[ScopeGateError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[ScopeGateError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("DEPARTMENT_LOCKED")
        class DepartmentLockedError(ScopeGateError):
            code = "DEPARTMENT_LOCKED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


for _cls in (
    ScopeGateError,
    ConfigurationError,
    ValidationError,
    ConflictError,
    NotFoundError,
    AccessDeniedError,
    InvalidScopeError,
):
    error_registry.register(_cls.code, _cls)


# ---- Transport Mapping ------------------------------------------------------


def get_http_status(error: ScopeGateError) -> int:
    """HTTP status code for an error raised by scopegate."""
    return error.http_status


def get_grpc_status_code(error: ScopeGateError) -> Any:
    """Map ScopeGateError to gRPC status code.

    Returns grpc.StatusCode value for the given error type.
    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "VALIDATION_ERROR": grpc.StatusCode.INVALID_ARGUMENT,
        "CONFLICT": grpc.StatusCode.ALREADY_EXISTS,
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "ACCESS_DENIED": grpc.StatusCode.PERMISSION_DENIED,
        "INVALID_SCOPE": grpc.StatusCode.INVALID_ARGUMENT,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)
