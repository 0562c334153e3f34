"""Gateway-forwarded identity headers.

An upstream gateway that has already verified the caller forwards
``X-User-Id``, ``X-User-Role`` and ``X-Organization-Id``.  Only deploy this
provider behind such a gateway: the headers are trusted as-is.
"""

from __future__ import annotations

from collections.abc import Mapping

from reliefdesk.auth_providers.base import AuthResult, normalize_headers
from reliefdesk.rbac import Principal

USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"
ORGANIZATION_HEADER = "x-organization-id"


class HeaderProvider:
    """Build the principal from forwarded identity headers."""

    name = "header"

    async def authenticate(self, headers: Mapping[str, str]) -> AuthResult:
        h = normalize_headers(headers)
        user_id = h.get(USER_ID_HEADER, "").strip()
        if not user_id:
            return AuthResult(authenticated=False, provider=self.name)

        role = h.get(USER_ROLE_HEADER, "").strip()
        if not role:
            return AuthResult(
                authenticated=False,
                provider=self.name,
                error="X-User-Role header missing",
            )

        claims = {
            "id": user_id,
            "role": role,
            "organizationId": h.get(ORGANIZATION_HEADER, "").strip() or None,
        }
        return AuthResult(
            authenticated=True,
            principal=Principal.from_record(claims),
            provider=self.name,
            claims=claims,
        )
