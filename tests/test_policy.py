"""Tests for resource/action authorization (reliefdesk.policy)."""

from __future__ import annotations

import pytest

from reliefdesk.exceptions import PrincipalRequiredError
from reliefdesk.policy import (
    ACTION_PERMISSIONS,
    Action,
    ResourceType,
    allowed_actions,
    can_perform,
    filter_resources,
    required_permission,
)
from reliefdesk.rbac import Permission, Principal, Role


class TestRequiredPermission:
    def test_report_actions(self):
        assert required_permission(ResourceType.REPORT, Action.READ) == Permission.VIEW_REPORTS
        assert required_permission("report", "update") == Permission.EDIT_REPORTS
        assert required_permission("report", "delete") == Permission.DELETE_REPORTS

    def test_unmapped_pair(self):
        assert required_permission(ResourceType.MEDIA, Action.UPDATE) is None

    def test_unknown_names(self):
        assert required_permission("budget", "read") is None
        assert required_permission("report", "publish") is None

    def test_table_only_uses_known_permissions(self):
        assert set(ACTION_PERMISSIONS.values()) <= set(Permission)


class TestCanPerform:
    def test_create_without_resource(self, make_user):
        assert can_perform(make_user(role=Role.COORDINATOR), "report", "create") is True
        assert can_perform(make_user(role=Role.FIELD_WORKER), "report", "create") is False
        assert can_perform(make_user(role=Role.FIELD_WORKER), "assessment", "create") is True

    def test_same_org_uses_role_permissions(self, make_user, make_report):
        coordinator = make_user(id="user-9", role=Role.COORDINATOR)
        report = make_report()
        assert can_perform(coordinator, ResourceType.REPORT, Action.READ, report) is True
        assert can_perform(coordinator, ResourceType.REPORT, Action.UPDATE, report) is True
        assert can_perform(coordinator, ResourceType.REPORT, Action.DELETE, report) is False

    def test_owner_may_read_and_update(self, make_user, make_report):
        viewer = make_user(id="user-1", role=Role.VIEWER)
        report = make_report(authorId="user-1")
        assert can_perform(viewer, "report", "read", report) is True
        assert can_perform(viewer, "report", "update", report) is True
        assert can_perform(viewer, "report", "delete", report) is False

    def test_non_owner_viewer_cannot_update(self, make_user, make_report):
        viewer = make_user(id="user-2", role=Role.VIEWER)
        report = make_report(authorId="user-1")
        assert can_perform(viewer, "report", "update", report) is False

    def test_owner_with_invalid_role_gets_nothing(self, make_user, make_report):
        user = make_user(id="user-1", role="INVALID_ROLE")
        report = make_report(authorId="user-1")
        assert can_perform(user, "report", "read", report) is False

    def test_other_organization_is_denied_even_to_owner(self, make_user, make_report):
        manager = make_user(id="user-1", role=Role.MANAGER, organization_id="org-2")
        report = make_report(authorId="user-1", organizationId="org-1")
        for action in Action:
            assert can_perform(manager, "report", action, report) is False

    def test_super_admin_crosses_organizations(self, make_user, make_report):
        admin = make_user(role=Role.SUPER_ADMIN, organization_id="org-hq")
        report = make_report(organizationId="org-1")
        assert can_perform(admin, "report", "delete", report) is True

    def test_super_admin_still_needs_a_mapped_action(self, make_user):
        admin = make_user(role=Role.SUPER_ADMIN, organization_id="org-hq")
        media = {"id": "m-1", "organizationId": "org-1"}
        assert can_perform(admin, "media", "update", media) is False

    def test_principal_without_organization_cannot_touch_scoped_records(
        self, make_user, make_report
    ):
        manager = make_user(role=Role.MANAGER, organization_id=None)
        assert can_perform(manager, "report", "read", make_report()) is False

    def test_unscoped_record_falls_back_to_role(self, make_user):
        template = {"id": "tpl-1", "name": "Shelter assessment"}
        manager = make_user(role=Role.MANAGER)
        coordinator = make_user(role=Role.COORDINATOR)
        assert can_perform(manager, "template", "update", template) is True
        assert can_perform(coordinator, "template", "update", template) is False

    def test_missing_principal_raises(self, make_report):
        with pytest.raises(PrincipalRequiredError):
            can_perform(None, "report", "read", make_report())


class TestFilterResources:
    def test_keeps_own_organization(self, make_user, make_report):
        manager = make_user(role=Role.MANAGER, organization_id="org-1")
        reports = [
            make_report(id="r-1", organizationId="org-1"),
            make_report(id="r-2", organizationId="org-2"),
            make_report(id="r-3", organizationId="org-1"),
        ]
        kept = filter_resources(manager, reports, ResourceType.REPORT)
        assert [r["id"] for r in kept] == ["r-1", "r-3"]

    def test_delete_filter_keeps_nothing_for_viewer(self, make_user, make_report):
        viewer = make_user(role=Role.VIEWER)
        assert filter_resources(viewer, [make_report()], "report", Action.DELETE) == []

    def test_missing_principal_raises(self):
        with pytest.raises(PrincipalRequiredError):
            filter_resources(None, [], "report")


class TestAllowedActions:
    def test_manager_has_full_crud(self, make_user, make_report):
        manager = make_user(role=Role.MANAGER)
        assert allowed_actions(manager, "report", make_report()) == list(Action)

    def test_viewer_on_someone_elses_report(self, make_user, make_report):
        viewer = make_user(id="user-2", role=Role.VIEWER)
        assert allowed_actions(viewer, "report", make_report()) == [Action.READ]

    def test_viewer_on_own_report(self, make_user, make_report):
        viewer = make_user(id="user-1", role=Role.VIEWER)
        report = make_report(authorId="user-1")
        assert allowed_actions(viewer, "report", report) == [Action.READ, Action.UPDATE]

    def test_coordinator_without_record(self, make_user):
        coordinator = make_user(role=Role.COORDINATOR)
        assert allowed_actions(coordinator, "report") == [
            Action.CREATE,
            Action.READ,
            Action.UPDATE,
        ]

    def test_foreign_record(self, make_user, make_report):
        coordinator = make_user(organization_id="org-2")
        assert allowed_actions(coordinator, "report", make_report()) == []

    def test_invalid_role_warns_once(self, make_user, make_report, caplog):
        user = make_user(role="INVALID_ROLE")
        with caplog.at_level("WARNING", logger="reliefdesk.rbac"):
            assert allowed_actions(user, "report", make_report()) == []
        warnings = [r for r in caplog.records if "Unrecognised role" in r.getMessage()]
        assert len(warnings) == 1


class TestRecordPrincipalsAndKeys:
    def test_dict_principal(self, make_report):
        manager = {"id": "user-9", "role": "MANAGER", "organizationId": "org-123"}
        assert can_perform(manager, "report", "delete", make_report()) is True
        assert allowed_actions(manager, "report", make_report()) == list(Action)

    def test_dict_super_admin_crosses_organizations(self, make_report):
        admin = {"id": "root", "role": "SUPER_ADMIN", "organizationId": "org-hq"}
        assert can_perform(admin, "report", "delete", make_report()) is True

    def test_integer_keys_from_orm_rows(self):
        user = Principal.from_record({"id": 5, "role": "VIEWER", "organization_id": 7})
        own = {"organization_id": 7, "author_id": 5}
        other_org = {"organization_id": 8, "author_id": 5}
        assert can_perform(user, "report", "update", own) is True
        assert can_perform(user, "report", "read", other_org) is False

    def test_filter_resources_with_dict_principal(self, make_report):
        manager = {"id": "user-9", "role": "MANAGER", "organizationId": "org-1"}
        reports = [make_report(id="r-1", organizationId="org-1"), make_report(id="r-2")]
        assert [r["id"] for r in filter_resources(manager, reports, "report")] == ["r-1"]
