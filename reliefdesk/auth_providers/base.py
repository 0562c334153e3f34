"""Base principal provider protocol and result types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from reliefdesk.rbac import Principal


@dataclass
class AuthResult:
    """Result of resolving a principal from request credentials.

    ``authenticated=False`` with ``error=None`` means no credentials were
    presented at all; with an ``error`` it means they were presented but
    rejected.
    """

    authenticated: bool
    principal: Principal | None = None
    provider: str = ""
    claims: dict = field(default_factory=dict)
    error: str | None = None

    @property
    def anonymous(self) -> bool:
        return not self.authenticated and self.error is None


@runtime_checkable
class PrincipalProvider(Protocol):
    """Protocol that all principal providers must implement."""

    name: str

    async def authenticate(self, headers: Mapping[str, str]) -> AuthResult:
        """Resolve the request's principal from its headers."""
        ...


def normalize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Lower-case header names so lookups work for plain dicts and Starlette headers."""
    return {k.lower(): v for k, v in headers.items()}
