"""Shared fixtures for reliefdesk tests."""

from __future__ import annotations

from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from reliefdesk.api.app import app
from reliefdesk.rbac import Principal, Role


@pytest.fixture
def make_user():
    """Factory for principals with sensible defaults (coordinator in org-123)."""

    def _make(
        id: str = "user-123",
        role: Role | str = Role.COORDINATOR,
        organization_id: str | None = "org-123",
    ) -> Principal:
        return Principal(id=id, role=role, organization_id=organization_id)

    return _make


@pytest.fixture
def make_report():
    """Factory for report records shaped like API payloads."""

    def _make(**overrides: Any) -> dict[str, Any]:
        report = {
            "id": "report-123",
            "title": "Flood response situation report",
            "status": "DRAFT",
            "authorId": "user-123",
            "organizationId": "org-123",
        }
        report.update(overrides)
        return report

    return _make


@pytest_asyncio.fixture
async def client(monkeypatch):
    """HTTP test client using gateway-forwarded identity headers."""
    monkeypatch.setenv("RD_AUTH_PROVIDER", "header")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def headers_for():
    """Build gateway identity headers for a role."""

    def _make(
        role: Role | str, user_id: str = "user-123", organization_id: str = "org-123"
    ) -> dict[str, str]:
        return {
            "X-User-Id": user_id,
            "X-User-Role": str(role),
            "X-Organization-Id": organization_id,
        }

    return _make
