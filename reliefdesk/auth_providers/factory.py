"""Factory for creating principal providers based on configuration."""

from __future__ import annotations

from reliefdesk.auth_providers.base import PrincipalProvider


def create_provider(
    provider_name: str,
    *,
    jwt_secret: str | None = None,
    jwt_algorithm: str = "HS256",
    jwt_audience: str | None = None,
) -> PrincipalProvider:
    """Create a principal provider by name."""
    if provider_name == "header":
        from reliefdesk.auth_providers.header_provider import HeaderProvider

        return HeaderProvider()

    if provider_name == "jwt":
        if not jwt_secret:
            msg = "jwt_secret required for jwt principal provider"
            raise ValueError(msg)
        from reliefdesk.auth_providers.jwt_provider import JWTProvider

        return JWTProvider(jwt_secret, algorithm=jwt_algorithm, audience=jwt_audience)

    msg = f"Unknown principal provider: {provider_name}"
    raise ValueError(msg)
