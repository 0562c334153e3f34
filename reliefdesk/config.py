"""Centralized configuration for reliefdesk.

Uses Pydantic BaseSettings with environment variable loading and validation.
All RD_* environment variables are validated at import time.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

#: HMAC algorithms accepted for shared-secret token verification.
HMAC_ALGORITHMS: frozenset[str] = frozenset({"HS256", "HS384", "HS512"})

PRINCIPAL_PROVIDERS: frozenset[str] = frozenset({"header", "jwt"})


def check_auth_provider(v: str) -> str:
    """Normalize and validate an RD_AUTH_PROVIDER value."""
    v = v.strip().lower()
    if v not in PRINCIPAL_PROVIDERS:
        msg = f"RD_AUTH_PROVIDER must be 'header' or 'jwt', got '{v}'"
        raise ValueError(msg)
    return v


def check_jwt_algorithm(v: str) -> str:
    """Normalize and validate an RD_JWT_ALGORITHM value."""
    v = v.strip().upper()
    if v not in HMAC_ALGORITHMS:
        msg = f"RD_JWT_ALGORITHM must be one of {sorted(HMAC_ALGORITHMS)}, got '{v}'"
        raise ValueError(msg)
    return v


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {"env_prefix": "RD_", "case_sensitive": False, "extra": "ignore"}

    # Auth
    auth_provider: str = Field(
        default="header", description="Principal source: header (gateway-forwarded) or jwt"
    )
    jwt_secret: str | None = Field(default=None, description="Shared secret for JWT verification")
    jwt_algorithm: str = Field(default="HS256", description="JWT signature algorithm")
    jwt_audience: str | None = Field(default=None, description="Expected JWT audience")

    # Logging
    log_format: str = Field(default="text", description="Log format: text or json")
    log_level: str = Field(default="INFO", description="Python log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")  # noqa: S104
    port: int = Field(default=8000, ge=1, le=65535, description="Server bind port")

    # CORS
    cors_origins: str = Field(default="*", description="Comma-separated CORS origins")

    @field_validator("auth_provider")
    @classmethod
    def validate_auth_provider(cls, v: str) -> str:
        return check_auth_provider(v)

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        return check_jwt_algorithm(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            msg = f"RD_LOG_FORMAT must be 'text' or 'json', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        import logging

        v = v.upper()
        if not isinstance(getattr(logging, v, None), int):
            msg = f"RD_LOG_LEVEL must be a valid Python log level, got '{v}'"
            raise ValueError(msg)
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        """Return parsed list of CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Singleton, validated at import time.
settings = Settings()
