"""JWT bearer-token principal provider.

Tokens are issued elsewhere; this provider only verifies them with PyJWT
and maps the ``userId`` (or ``sub``), ``role`` and ``organizationId``
claims onto a :class:`~reliefdesk.rbac.Principal`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import jwt

from reliefdesk.auth_providers.base import AuthResult, normalize_headers
from reliefdesk.rbac import Principal

logger = logging.getLogger("reliefdesk.auth_providers.jwt")


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    """Return the bearer token from the Authorization header, if any."""
    auth_header = normalize_headers(headers).get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None


class JWTProvider:
    """Authenticate via shared-secret signed JWTs."""

    name = "jwt"

    def __init__(self, secret: str, algorithm: str = "HS256", audience: str | None = None) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    async def authenticate(self, headers: Mapping[str, str]) -> AuthResult:
        token = extract_bearer_token(headers)
        if token is None:
            return AuthResult(authenticated=False, provider=self.name)

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
            )
        except jwt.PyJWTError as e:
            logger.debug("JWT verification failed: %s", e)
            return AuthResult(
                authenticated=False,
                provider=self.name,
                error=f"JWT validation failed: {e}",
            )

        user_id = payload.get("userId") or payload.get("sub")
        if not user_id:
            return AuthResult(
                authenticated=False,
                provider=self.name,
                error="JWT has no userId or sub claim",
            )

        principal = Principal.from_record(
            {
                "id": user_id,
                "role": payload.get("role", ""),
                "organizationId": payload.get("organizationId", payload.get("organization_id")),
            }
        )
        return AuthResult(
            authenticated=True,
            principal=principal,
            provider=self.name,
            claims=payload,
        )
