"""FastAPI application for the reliefdesk authorization service.

Endpoints:
  GET    /health                  - Liveness and version
  GET    /auth/permissions        - Effective permissions of the caller
  POST   /auth/check              - Evaluate a set of permissions for the caller
  POST   /auth/resource-actions   - CRUD actions the caller may take on a record
  GET    /auth/assignable-roles   - Roles the caller may assign (ASSIGN_ROLES)
  GET    /auth/matrix             - Role/permission matrix (MANAGE_SECURITY or VIEW_AUDIT_LOGS)
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Literal
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import reliefdesk
from reliefdesk.auth import get_principal, require_any_permission, require_permissions
from reliefdesk.config import settings
from reliefdesk.exceptions import ReliefDeskError
from reliefdesk.logging_config import log_startup_info, setup_logging
from reliefdesk.policy import ResourceType, allowed_actions
from reliefdesk.rbac import (
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    Permission,
    Principal,
    can_assign_role,
    has_all_permissions,
    has_any_permission,
    permissions_for,
)

logger = logging.getLogger("reliefdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    log_startup_info()
    yield
    logger.info("Shutdown complete")


_OPENAPI_TAGS = [
    {"name": "Health", "description": "Health checks and version info"},
    {"name": "Authorization", "description": "Permission introspection for the calling principal"},
]

app = FastAPI(
    title="reliefdesk Authorization Service",
    description="Role-based access control for humanitarian assessments and reports.",
    version=reliefdesk.__version__,
    lifespan=lifespan,
    openapi_tags=_OPENAPI_TAGS,
)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------
@app.exception_handler(ReliefDeskError)
async def reliefdesk_error_handler(request: Request, exc: ReliefDeskError) -> JSONResponse:
    """Centralized handler for custom reliefdesk exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_type,
            "message": exc.message,
            "request_id": request_id,
        },
    )


# ---------------------------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request logging (request_id is read back by the error handler)
# ---------------------------------------------------------------------------
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    request_id = str(uuid4())[:8]
    request.state.request_id = request_id
    start = time.monotonic()
    response: Response = await call_next(request)
    elapsed_ms = round((time.monotonic() - start) * 1000, 1)
    principal = getattr(request.state, "principal", None)
    logger.info(
        "[%s] %s %s -> %s in %.1fms (%s)",
        request_id,
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        principal.id if principal else "anonymous",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
            "principal_id": principal.id if principal else None,
        },
    )
    response.headers["X-Request-ID"] = request_id
    return response


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class PermissionCheckRequest(BaseModel):
    permissions: list[Permission] = Field(description="Permissions to evaluate")
    mode: Literal["all", "any"] = Field(default="all", description="Require all or any")


class ResourceActionsRequest(BaseModel):
    resource_type: ResourceType
    resource: dict[str, Any] | None = Field(
        default=None, description="The loaded record, or null for create-style checks"
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health", tags=["Health"], summary="Health check")
async def health():
    return {"status": "ok", "version": reliefdesk.__version__}


# ---------------------------------------------------------------------------
# Authorization introspection
# ---------------------------------------------------------------------------
@app.get("/auth/permissions", tags=["Authorization"], summary="Caller's effective permissions")
async def my_permissions(principal: Principal | None = Depends(get_principal)):
    granted = permissions_for(principal)
    return {
        "id": principal.id,
        "role": str(principal.role),
        "organization_id": principal.organization_id,
        "permissions": sorted(str(p) for p in granted),
    }


@app.post("/auth/check", tags=["Authorization"], summary="Evaluate permissions for the caller")
async def check_permissions(
    req: PermissionCheckRequest, principal: Principal | None = Depends(get_principal)
):
    if req.mode == "any":
        allowed = has_any_permission(principal, req.permissions)
    else:
        allowed = has_all_permissions(principal, req.permissions)
    return {"allowed": allowed, "mode": req.mode}


@app.post(
    "/auth/resource-actions",
    tags=["Authorization"],
    summary="Actions the caller may take on a record",
)
async def resource_actions(
    req: ResourceActionsRequest, principal: Principal | None = Depends(get_principal)
):
    actions = allowed_actions(principal, req.resource_type, req.resource)
    return {"resource_type": str(req.resource_type), "allowed_actions": [str(a) for a in actions]}


@app.get(
    "/auth/assignable-roles",
    tags=["Authorization"],
    summary="Roles the caller may assign to other users",
)
async def assignable_roles(
    principal: Principal = Depends(require_permissions(Permission.ASSIGN_ROLES)),
):
    return {"roles": [str(r) for r in ROLE_HIERARCHY if can_assign_role(principal.role, r)]}


@app.get(
    "/auth/matrix",
    tags=["Authorization"],
    summary="Role to permission matrix",
    dependencies=[
        Depends(require_any_permission(Permission.MANAGE_SECURITY, Permission.VIEW_AUDIT_LOGS))
    ],
)
async def permission_matrix():
    return {
        "roles": [str(r) for r in ROLE_HIERARCHY],
        "matrix": {
            str(role): sorted(str(p) for p in ROLE_PERMISSIONS[role]) for role in ROLE_HIERARCHY
        },
    }
