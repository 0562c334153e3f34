"""FastAPI authentication and authorization dependencies for reliefdesk.

The principal is resolved by the provider selected with ``RD_AUTH_PROVIDER``:

- ``header`` (default) - trusts ``X-User-Id`` / ``X-User-Role`` /
  ``X-Organization-Id`` forwarded by an authenticating gateway.
- ``jwt`` - verifies ``Authorization: Bearer <token>`` against
  ``RD_JWT_SECRET``.

Status mapping for guarded endpoints:

- no credentials → 401 (:class:`PrincipalRequiredError`)
- credentials present but invalid → 401 (:class:`InvalidCredentialsError`)
- authenticated but denied → 403 (:class:`PermissionDeniedError`)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import Any

from fastapi import Depends, Request

from reliefdesk.auth_providers.base import PrincipalProvider
from reliefdesk.auth_providers.factory import create_provider
from reliefdesk.config import check_auth_provider, check_jwt_algorithm, settings
from reliefdesk.exceptions import (
    ConfigurationError,
    InvalidCredentialsError,
    PermissionDeniedError,
)
from reliefdesk.rbac import (
    Permission,
    Principal,
    can_access_resource,
    has_all_permissions,
    has_any_permission,
    require_principal,
)

_audit_logger = logging.getLogger("reliefdesk.audit")


def _build_provider() -> PrincipalProvider:
    # Read config via os.environ so monkeypatch works in tests; the values
    # pass through the same checks as Settings.
    try:
        provider_name = check_auth_provider(
            os.environ.get("RD_AUTH_PROVIDER", settings.auth_provider)
        )
        algorithm = check_jwt_algorithm(
            os.environ.get("RD_JWT_ALGORITHM", settings.jwt_algorithm)
        )
        return create_provider(
            provider_name,
            jwt_secret=os.environ.get("RD_JWT_SECRET", settings.jwt_secret),
            jwt_algorithm=algorithm,
            jwt_audience=os.environ.get("RD_JWT_AUDIENCE", settings.jwt_audience),
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def get_principal(request: Request) -> Principal | None:
    """FastAPI dependency resolving the request's principal.

    Returns ``None`` when the request carries no credentials; guarded
    dependencies turn that into a 401. The principal is also stored on
    ``request.state.principal``.

    Raises:
        InvalidCredentialsError: credentials were presented but rejected.
    """
    provider = _build_provider()
    result = await provider.authenticate(request.headers)

    if result.anonymous:
        request.state.principal = None
        return None

    if not result.authenticated:
        _audit_logger.warning(
            "Auth failure (invalid credentials): %s %s from %s",
            request.method,
            request.url.path,
            _client_host(request),
            extra={
                "event_category": "audit",
                "action": "auth_failure",
                "path": request.url.path,
                "provider": result.provider,
                "error": result.error,
            },
        )
        raise InvalidCredentialsError("Invalid credentials.")

    request.state.principal = result.principal
    return result.principal


def _log_denial(request: Request, principal: Principal, permissions: Sequence[Permission]) -> None:
    _audit_logger.warning(
        "Authorization denied: %s %s for %s (%s)",
        request.method,
        request.url.path,
        principal.id,
        principal.role,
        extra={
            "event_category": "audit",
            "action": "authz_denied",
            "path": request.url.path,
            "principal_id": principal.id,
            "role": str(principal.role),
            "permissions": [str(p) for p in permissions],
        },
    )


def require_permissions(*permissions: Permission):
    """Dependency factory: require the principal to hold *all* of the given permissions.

    Usage::

        @app.delete("/reports/{report_id}")
        async def delete_report(
            principal: Principal = Depends(require_permissions(Permission.DELETE_REPORTS)),
        ): ...
    """

    async def _check(
        request: Request, principal: Principal | None = Depends(get_principal)
    ) -> Principal:
        if not has_all_permissions(principal, permissions):
            _log_denial(request, principal, permissions)
            raise PermissionDeniedError(permissions)
        return principal

    return _check


def require_any_permission(*permissions: Permission):
    """Dependency factory: require the principal to hold at least one of the given permissions."""

    async def _check(
        request: Request, principal: Principal | None = Depends(get_principal)
    ) -> Principal:
        if not has_any_permission(principal, permissions):
            _log_denial(request, principal, permissions)
            raise PermissionDeniedError(
                permissions,
                message=f"Requires one of: {', '.join(str(p) for p in permissions)}",
            )
        return principal

    return _check


def ensure_resource_access(principal: Principal | None, resource: Any, field: str) -> None:
    """Raise 403 unless *resource* is scoped to *principal* through *field*.

    For handlers that have already loaded the record they are about to change.
    """
    principal = require_principal(principal)
    if not can_access_resource(principal, resource, field):
        _audit_logger.warning(
            "Resource scope mismatch on %s for %s",
            field,
            principal.id,
            extra={
                "event_category": "audit",
                "action": "scope_denied",
                "principal_id": principal.id,
            },
        )
        raise PermissionDeniedError(message="Resource is outside your access scope.")
