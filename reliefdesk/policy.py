"""Resource/action authorization built on top of :mod:`reliefdesk.rbac`.

Handlers that know *what kind* of record they are touching and *what* they
want to do with it ask :func:`can_perform` instead of picking a permission
themselves.  Pairs with no mapped permission (e.g. updating media) are
always denied.  Otherwise the decision combines three rules, in order:

1. A record belonging to another organization is only reachable by
   ``SUPER_ADMIN``.
2. The owner of a record may always read and update it.
3. Otherwise the role must hold the permission mapped to the
   ``(resource type, action)`` pair.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any, TypeVar

from reliefdesk.rbac import (
    RESOURCE_SCOPES,
    SCOPE_PRINCIPAL_ATTRIBUTES,
    Permission,
    Role,
    ScopeAxis,
    principal_role,
    require_principal,
    resource_value,
    role_grants,
    same_scope_key,
)

T = TypeVar("T")


class ResourceType(StrEnum):
    REPORT = "report"
    ASSESSMENT = "assessment"
    TEMPLATE = "template"
    MEDIA = "media"
    USER = "user"
    ORGANIZATION = "organization"


class Action(StrEnum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


#: Actions an owner may take on their own records regardless of role.
OWNER_ACTIONS: frozenset[Action] = frozenset({Action.READ, Action.UPDATE})

#: Permission required for each (resource type, action) pair.
ACTION_PERMISSIONS: Mapping[tuple[ResourceType, Action], Permission] = MappingProxyType(
    {
        (ResourceType.REPORT, Action.CREATE): Permission.CREATE_REPORTS,
        (ResourceType.REPORT, Action.READ): Permission.VIEW_REPORTS,
        (ResourceType.REPORT, Action.UPDATE): Permission.EDIT_REPORTS,
        (ResourceType.REPORT, Action.DELETE): Permission.DELETE_REPORTS,
        (ResourceType.ASSESSMENT, Action.CREATE): Permission.CREATE_ASSESSMENTS,
        (ResourceType.ASSESSMENT, Action.READ): Permission.VIEW_ASSESSMENTS,
        (ResourceType.ASSESSMENT, Action.UPDATE): Permission.EDIT_ASSESSMENTS,
        (ResourceType.ASSESSMENT, Action.DELETE): Permission.DELETE_ASSESSMENTS,
        (ResourceType.TEMPLATE, Action.CREATE): Permission.MANAGE_TEMPLATES,
        (ResourceType.TEMPLATE, Action.READ): Permission.VIEW_TEMPLATES,
        (ResourceType.TEMPLATE, Action.UPDATE): Permission.MANAGE_TEMPLATES,
        (ResourceType.TEMPLATE, Action.DELETE): Permission.MANAGE_TEMPLATES,
        (ResourceType.MEDIA, Action.CREATE): Permission.UPLOAD_MEDIA,
        (ResourceType.MEDIA, Action.READ): Permission.VIEW_REPORTS,
        (ResourceType.MEDIA, Action.DELETE): Permission.DELETE_MEDIA,
        (ResourceType.USER, Action.CREATE): Permission.MANAGE_USERS,
        (ResourceType.USER, Action.READ): Permission.VIEW_USERS,
        (ResourceType.USER, Action.UPDATE): Permission.MANAGE_USERS,
        (ResourceType.USER, Action.DELETE): Permission.MANAGE_USERS,
        (ResourceType.ORGANIZATION, Action.CREATE): Permission.MANAGE_ORGANIZATION,
        (ResourceType.ORGANIZATION, Action.READ): Permission.MANAGE_ORGANIZATION,
        (ResourceType.ORGANIZATION, Action.UPDATE): Permission.MANAGE_ORGANIZATION,
        (ResourceType.ORGANIZATION, Action.DELETE): Permission.MANAGE_ORGANIZATION,
    }
)


def required_permission(
    resource_type: ResourceType | str, action: Action | str
) -> Permission | None:
    """Return the permission gating *action* on *resource_type*, if any."""
    try:
        key = (ResourceType(resource_type), Action(action))
    except ValueError:
        return None
    return ACTION_PERMISSIONS.get(key)


def _scope_values(resource: Any, axis: ScopeAxis) -> list[Any]:
    values = []
    for field, field_axis in RESOURCE_SCOPES.items():
        if field_axis is axis:
            value = resource_value(resource, field)
            if value is not None:
                values.append(value)
    return values


def _is_foreign(principal: Any, resource: Any) -> bool:
    attr = SCOPE_PRINCIPAL_ATTRIBUTES[ScopeAxis.ORGANIZATION]
    own_org = getattr(principal, attr, None)
    return any(
        not same_scope_key(value, own_org)
        for value in _scope_values(resource, ScopeAxis.ORGANIZATION)
    )


def _is_owner(principal: Any, resource: Any) -> bool:
    attr = SCOPE_PRINCIPAL_ATTRIBUTES[ScopeAxis.OWNER]
    own_id = getattr(principal, attr, None)
    return any(
        same_scope_key(value, own_id) for value in _scope_values(resource, ScopeAxis.OWNER)
    )


def _decide(
    principal: Any,
    role: Role | None,
    resource_type: ResourceType | str,
    action: Action | str,
    resource: Any,
) -> bool:
    permission = required_permission(resource_type, action)
    if permission is None:
        return False

    if resource is not None and _is_foreign(principal, resource):
        return role is Role.SUPER_ADMIN

    if (
        resource is not None
        and role is not None
        and Action(action) in OWNER_ACTIONS
        and _is_owner(principal, resource)
    ):
        return True

    return role_grants(role, permission)


def can_perform(
    principal: Any,
    resource_type: ResourceType | str,
    action: Action | str,
    resource: Any = None,
) -> bool:
    """Decide whether *principal* may take *action* on a record of *resource_type*.

    *resource* is the already-loaded record, or ``None`` for actions that do
    not target an existing record (e.g. ``create``).

    Raises:
        PrincipalRequiredError: *principal* is ``None``.
    """
    principal = require_principal(principal)
    return _decide(principal, principal_role(principal), resource_type, action, resource)


def filter_resources(
    principal: Any,
    resources: Iterable[T],
    resource_type: ResourceType | str,
    action: Action | str = Action.READ,
) -> list[T]:
    """Keep only the records *principal* may take *action* on."""
    principal = require_principal(principal)
    role = principal_role(principal)
    return [r for r in resources if _decide(principal, role, resource_type, action, r)]


def allowed_actions(
    principal: Any, resource_type: ResourceType | str, resource: Any = None
) -> list[Action]:
    """List the actions *principal* may take on *resource*, in CRUD order."""
    principal = require_principal(principal)
    role = principal_role(principal)
    return [a for a in Action if _decide(principal, role, resource_type, a, resource)]
