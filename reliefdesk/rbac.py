"""Role-Based Access Control for reliefdesk.

Defines the role hierarchy, the role-to-permission table, and the pure
predicates every mutating endpoint is gated on.

Roles (highest → lowest privilege):
    SUPER_ADMIN   - Platform operators; every permission, across organizations
    ORG_ADMIN     - Organization administration, users, security dashboards
    MANAGER       - Report and assessment lifecycle, templates, analytics
    COORDINATOR   - Author and share reports, export data
    FIELD_WORKER  - Collect assessments and upload media
    VIEWER        - Read-only access plus comments

Both tables are immutable and built once at import.  Nothing here performs
I/O or keeps state between calls, so every predicate is safe to call from
any number of concurrent request handlers.

Two outcomes are distinct:

* a *denial* is a plain ``False`` return;
* a missing principal raises :class:`~reliefdesk.exceptions.PrincipalRequiredError`.

An unrecognised role is not an error: it resolves to no permissions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from reliefdesk.exceptions import PrincipalRequiredError

logger = logging.getLogger("reliefdesk.rbac")


class Role(StrEnum):
    """Enumerated platform roles."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ORG_ADMIN = "ORG_ADMIN"
    MANAGER = "MANAGER"
    COORDINATOR = "COORDINATOR"
    FIELD_WORKER = "FIELD_WORKER"
    VIEWER = "VIEWER"


class Permission(StrEnum):
    """Enumerated capabilities."""

    # Reports
    VIEW_REPORTS = "VIEW_REPORTS"
    CREATE_REPORTS = "CREATE_REPORTS"
    EDIT_REPORTS = "EDIT_REPORTS"
    DELETE_REPORTS = "DELETE_REPORTS"
    PUBLISH_REPORTS = "PUBLISH_REPORTS"
    APPROVE_REPORTS = "APPROVE_REPORTS"
    MANAGE_REPORTS = "MANAGE_REPORTS"
    COMMENT_ON_REPORTS = "COMMENT_ON_REPORTS"
    SHARE_REPORTS = "SHARE_REPORTS"
    EXPORT_REPORTS = "EXPORT_REPORTS"

    # Assessments
    VIEW_ASSESSMENTS = "VIEW_ASSESSMENTS"
    CREATE_ASSESSMENTS = "CREATE_ASSESSMENTS"
    EDIT_ASSESSMENTS = "EDIT_ASSESSMENTS"
    DELETE_ASSESSMENTS = "DELETE_ASSESSMENTS"
    EXPORT_ASSESSMENTS = "EXPORT_ASSESSMENTS"

    # Templates
    VIEW_TEMPLATES = "VIEW_TEMPLATES"
    MANAGE_TEMPLATES = "MANAGE_TEMPLATES"

    # Media
    UPLOAD_MEDIA = "UPLOAD_MEDIA"
    DELETE_MEDIA = "DELETE_MEDIA"

    # Users
    VIEW_USERS = "VIEW_USERS"
    MANAGE_USERS = "MANAGE_USERS"
    ASSIGN_ROLES = "ASSIGN_ROLES"

    # Organization
    MANAGE_ORGANIZATION = "MANAGE_ORGANIZATION"
    VIEW_ORG_ANALYTICS = "VIEW_ORG_ANALYTICS"
    CONFIGURE_SETTINGS = "CONFIGURE_SETTINGS"

    # Audit and security
    VIEW_AUDIT_LOGS = "VIEW_AUDIT_LOGS"
    MANAGE_SECURITY = "MANAGE_SECURITY"
    ACCESS_ADMIN_PANEL = "ACCESS_ADMIN_PANEL"

    # Collaboration
    INVITE_COLLABORATORS = "INVITE_COLLABORATORS"


#: Roles ordered from most to least privileged.
ROLE_HIERARCHY: tuple[Role, ...] = (
    Role.SUPER_ADMIN,
    Role.ORG_ADMIN,
    Role.MANAGER,
    Role.COORDINATOR,
    Role.FIELD_WORKER,
    Role.VIEWER,
)

#: Numeric rank per role; higher rank means more privilege.
ROLE_RANK: Mapping[Role, int] = MappingProxyType(
    {role: len(ROLE_HIERARCHY) - index for index, role in enumerate(ROLE_HIERARCHY)}
)

# Each tier extends the one below it, so the table is monotonic by construction.
_VIEWER = frozenset(
    {
        Permission.VIEW_REPORTS,
        Permission.VIEW_ASSESSMENTS,
        Permission.VIEW_TEMPLATES,
        Permission.COMMENT_ON_REPORTS,
    }
)
_FIELD_WORKER = _VIEWER | {
    Permission.CREATE_ASSESSMENTS,
    Permission.EDIT_ASSESSMENTS,
    Permission.UPLOAD_MEDIA,
}
_COORDINATOR = _FIELD_WORKER | {
    Permission.CREATE_REPORTS,
    Permission.EDIT_REPORTS,
    Permission.SHARE_REPORTS,
    Permission.EXPORT_REPORTS,
    Permission.EXPORT_ASSESSMENTS,
    Permission.VIEW_USERS,
}
_MANAGER = _COORDINATOR | {
    Permission.DELETE_REPORTS,
    Permission.PUBLISH_REPORTS,
    Permission.MANAGE_REPORTS,
    Permission.DELETE_ASSESSMENTS,
    Permission.MANAGE_TEMPLATES,
    Permission.DELETE_MEDIA,
    Permission.VIEW_ORG_ANALYTICS,
    Permission.INVITE_COLLABORATORS,
}
_ORG_ADMIN = _MANAGER | {
    Permission.APPROVE_REPORTS,
    Permission.MANAGE_USERS,
    Permission.ASSIGN_ROLES,
    Permission.MANAGE_ORGANIZATION,
    Permission.CONFIGURE_SETTINGS,
    Permission.VIEW_AUDIT_LOGS,
    Permission.MANAGE_SECURITY,
}

#: Mapping from each role to the permissions it holds.
#: SUPER_ADMIN holds every member of :class:`Permission`, including any added later.
ROLE_PERMISSIONS: Mapping[Role, frozenset[Permission]] = MappingProxyType(
    {
        Role.SUPER_ADMIN: frozenset(Permission),
        Role.ORG_ADMIN: _ORG_ADMIN,
        Role.MANAGER: _MANAGER,
        Role.COORDINATOR: _COORDINATOR,
        Role.FIELD_WORKER: _FIELD_WORKER,
        Role.VIEWER: _VIEWER,
    }
)


class ScopeAxis(StrEnum):
    """Ways a resource can be scoped to a principal."""

    ORGANIZATION = "organization"
    OWNER = "owner"


#: Principal attribute compared against the resource on each axis.
SCOPE_PRINCIPAL_ATTRIBUTES: Mapping[ScopeAxis, str] = MappingProxyType(
    {
        ScopeAxis.ORGANIZATION: "organization_id",
        ScopeAxis.OWNER: "id",
    }
)

#: Resource field names understood by :func:`can_access_resource`.
#: Records arrive both as API payloads (camelCase) and ORM rows (snake_case).
RESOURCE_SCOPES: Mapping[str, ScopeAxis] = MappingProxyType(
    {
        "organizationId": ScopeAxis.ORGANIZATION,
        "organization_id": ScopeAxis.ORGANIZATION,
        "authorId": ScopeAxis.OWNER,
        "author_id": ScopeAxis.OWNER,
        "createdById": ScopeAxis.OWNER,
        "created_by_id": ScopeAxis.OWNER,
        "ownerId": ScopeAxis.OWNER,
        "owner_id": ScopeAxis.OWNER,
        "uploadedById": ScopeAxis.OWNER,
        "uploaded_by_id": ScopeAxis.OWNER,
    }
)


@dataclass(frozen=True)
class Principal:
    """The authenticated actor behind a request.

    ``role`` is kept as supplied so that a corrupted value can still be
    represented; the predicates treat it as having no permissions.
    """

    id: str
    role: Role | str
    organization_id: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Principal:
        """Build a principal from a user record or token claims.

        Accepts ``id``/``userId``, ``role``, and ``organization_id``/``organizationId``.
        """
        raw_role = record.get("role", "")
        role = _coerce_role(raw_role)
        org = record.get("organization_id", record.get("organizationId"))
        return cls(
            id=str(record.get("id", record.get("userId", ""))),
            role=role if role is not None else str(raw_role),
            organization_id=str(org) if org is not None else None,
        )


def _coerce_role(value: Any) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def _coerce_permission(value: Any) -> Permission | None:
    if isinstance(value, Permission):
        return value
    try:
        return Permission(value)
    except ValueError:
        return None


def require_principal(principal: Any) -> Any:
    """Return *principal* ready for the predicates.

    A user record (mapping) is converted with :meth:`Principal.from_record`;
    any other object is used as-is.

    Raises:
        PrincipalRequiredError: *principal* is ``None``.
    """
    if principal is None:
        raise PrincipalRequiredError("Authorization check requires an authenticated principal")
    if isinstance(principal, Mapping):
        return Principal.from_record(principal)
    return principal


def principal_role(principal: Any) -> Role | None:
    """Resolve the principal's role, or ``None`` (logged) when unrecognised."""
    raw = getattr(principal, "role", None)
    role = _coerce_role(raw)
    if role is None:
        logger.warning(
            "Unrecognised role %r for principal %s; granting no permissions",
            raw,
            getattr(principal, "id", "?"),
            extra={"principal_id": getattr(principal, "id", None)},
        )
    return role


def role_grants(role: Role | None, permission: Permission | str) -> bool:
    """Check *permission* against an already-resolved role."""
    required = _coerce_permission(permission)
    if required is None:
        logger.warning("Unknown permission %r requested; denying", permission)
        return False
    if role is None:
        return False
    if role is Role.SUPER_ADMIN:
        return True
    return required in ROLE_PERMISSIONS[role]


def get_permissions_for_role(role: Role | str) -> frozenset[Permission]:
    """Return the permissions held by *role* (empty for unknown roles)."""
    resolved = _coerce_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS[resolved]


def permissions_for(principal: Any) -> frozenset[Permission]:
    """Return the effective permissions of *principal*."""
    role = principal_role(require_principal(principal))
    if role is None:
        return frozenset()
    return ROLE_PERMISSIONS[role]


def has_permission(principal: Any, permission: Permission | str) -> bool:
    """Check whether *principal* holds *permission*.

    Raises:
        PrincipalRequiredError: *principal* is ``None``.
    """
    return role_grants(principal_role(require_principal(principal)), permission)


def has_all_permissions(principal: Any, permissions: Iterable[Permission | str]) -> bool:
    """True iff *principal* holds every permission (vacuously true when empty)."""
    role = principal_role(require_principal(principal))
    return all(role_grants(role, p) for p in permissions)


def has_any_permission(principal: Any, permissions: Iterable[Permission | str]) -> bool:
    """True iff *principal* holds at least one permission (false when empty)."""
    role = principal_role(require_principal(principal))
    return any(role_grants(role, p) for p in permissions)


def is_role_higher_or_equal(role_a: Role | str, role_b: Role | str) -> bool:
    """Check whether *role_a* ranks at or above *role_b*.

    Unknown roles on either side compare as ``False``.
    """
    a, b = _coerce_role(role_a), _coerce_role(role_b)
    if a is None or b is None:
        return False
    return ROLE_RANK[a] >= ROLE_RANK[b]


def can_assign_role(assigner_role: Role | str, target_role: Role | str) -> bool:
    """Roles can only be assigned strictly below the assigner's own level."""
    a, b = _coerce_role(assigner_role), _coerce_role(target_role)
    if a is None or b is None:
        return False
    return ROLE_RANK[a] > ROLE_RANK[b]


def resource_value(resource: Any, field: str) -> Any:
    """Read *field* from a mapping or attribute-bearing record (``None`` if absent)."""
    if isinstance(resource, Mapping):
        return resource.get(field)
    return getattr(resource, field, None)


def same_scope_key(value: Any, expected: Any) -> bool:
    """Compare scope keys by string form; ``None`` on either side never matches.

    :class:`Principal` stores ids as strings while ORM rows may carry ints.
    """
    if value is None or expected is None:
        return False
    return str(value) == str(expected)


def can_access_resource(principal: Any, resource: Any, field: str) -> bool:
    """Check that *resource* is scoped to *principal* through *field*.

    The field name selects a :class:`ScopeAxis` via :data:`RESOURCE_SCOPES`
    (``organizationId`` compares against the principal's organization,
    ``authorId`` and other owner fields against the principal's id).
    A missing or ``None`` field, or a field name with no registered axis,
    denies access.

    Raises:
        PrincipalRequiredError: *principal* is ``None``.
    """
    principal = require_principal(principal)
    axis = RESOURCE_SCOPES.get(field)
    if axis is None:
        logger.debug("No scope axis registered for field %r; denying", field)
        return False
    expected = getattr(principal, SCOPE_PRINCIPAL_ATTRIBUTES[axis], None)
    return same_scope_key(resource_value(resource, field), expected)
