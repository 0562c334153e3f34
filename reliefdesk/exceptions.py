"""Custom exception hierarchy for reliefdesk.

Provides structured error types that the centralized error handler
translates into consistent JSON responses.

An authorization *denial* is never an exception inside the evaluator: the
predicates in :mod:`reliefdesk.rbac` return ``False``. Only the HTTP layer
turns a denial into :class:`PermissionDeniedError`.
"""

from __future__ import annotations

from collections.abc import Iterable


class ReliefDeskError(Exception):
    """Base exception for all reliefdesk errors."""

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str = "An internal error occurred") -> None:
        self.message = message
        super().__init__(message)


class PrincipalRequiredError(ReliefDeskError):
    """An authorization check was invoked without a principal.

    This is a caller-contract violation (the request was never
    authenticated), not an access decision.
    """

    status_code = 401
    error_type = "authentication_required"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidCredentialsError(ReliefDeskError):
    """Credentials were supplied but could not be verified."""

    status_code = 401
    error_type = "invalid_credentials"


class PermissionDeniedError(ReliefDeskError):
    """The authenticated principal lacks the required permissions."""

    status_code = 403
    error_type = "permission_denied"

    def __init__(self, required: Iterable[str] = (), message: str | None = None) -> None:
        self.required = tuple(str(p) for p in required)
        if message is None:
            message = "Insufficient permissions."
            if self.required:
                message = f"Insufficient permissions. Required: {', '.join(self.required)}"
        super().__init__(message)


class ConfigurationError(ReliefDeskError):
    """Server-side authentication or authorization misconfiguration."""

    status_code = 500
    error_type = "configuration_error"
