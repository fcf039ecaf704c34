"""
Permission evaluator tests: table allow-list, action flags, scope rules,
row-level access and cache invalidation on grant/revoke.
"""
import pytest

from core.errors import Forbidden, InvalidTable
from domain.models import Action, PermissionCheck, PermissionEntry, Scope, UserPermission
from services.permissions_service import ALLOWED_TABLES, scope_satisfies, validate_table_name


def _store(db, user_id, table_name, **flags):
    db.permissions[(user_id, table_name)] = UserPermission(user_id=user_id, table_name=table_name, **flags)


def _check(table_name="users", action=Action.READ, scope=None):
    return PermissionCheck(table_name=table_name, action=action, scope=scope)


class TestTableNames:
    def test_allow_list(self):
        assert ALLOWED_TABLES == {
            "audit_logs", "clients", "enums", "invoices", "messages",
            "plants", "purchase_orders", "tenants", "user_permissions", "users",
        }
        assert validate_table_name("invoices") == "invoices"

    def test_unknown_table_raises(self, permission_service):
        with pytest.raises(InvalidTable) as exc:
            permission_service.can_perform("u1", _check(table_name="pg_shadow"))
        assert exc.value.status_code == 400
        assert "pg_shadow" in exc.value.message

    def test_unknown_table_on_grant(self, permission_service, db):
        with pytest.raises(InvalidTable):
            permission_service.grant_permission("u1", "secrets", {"can_read": True})
        assert db.permissions == {}


class TestScopeSatisfies:
    @pytest.mark.parametrize("stored,required,expected", [
        (Scope.ALL, Scope.ALL, True),
        (Scope.OWN, Scope.ALL, False),
        (Scope.NONE, Scope.ALL, False),
        (Scope.ALL, Scope.OWN, True),
        (Scope.OWN, Scope.OWN, True),
        (Scope.NONE, Scope.OWN, False),
        (Scope.NONE, None, True),
    ])
    def test_matrix(self, stored, required, expected):
        assert scope_satisfies(stored, required) is expected


class TestCanPerform:
    def test_no_row_denies(self, permission_service):
        assert permission_service.can_perform("u1", _check()) is False

    def test_flag_false_denies(self, permission_service, db):
        _store(db, "u1", "users", can_read=True, scope=Scope.ALL)
        assert permission_service.can_perform("u1", _check(action=Action.DELETE)) is False

    def test_update_all_needs_stored_all(self, permission_service, db):
        _store(db, "u1", "users", can_update=True, scope=Scope.OWN)
        _store(db, "u2", "users", can_update=True, scope=Scope.ALL)
        assert permission_service.can_perform("u1", _check(action=Action.UPDATE, scope=Scope.ALL)) is False
        assert permission_service.can_perform("u2", _check(action=Action.UPDATE, scope=Scope.ALL)) is True

    def test_own_requirement_met_by_all(self, permission_service, db):
        _store(db, "u1", "users", can_read=True, scope=Scope.ALL)
        assert permission_service.can_perform("u1", _check(scope=Scope.OWN)) is True

    def test_no_scope_requirement_needs_only_flag(self, permission_service, db):
        _store(db, "u1", "clients", can_create=True, scope=Scope.NONE)
        assert permission_service.can_perform("u1", _check("clients", Action.CREATE)) is True

    def test_require_raises_forbidden(self, permission_service):
        with pytest.raises(Forbidden) as exc:
            permission_service.require("u1", _check("invoices", Action.UPDATE))
        assert exc.value.message == "You do not have permission to update on invoices"


class TestCanAccessRecord:
    def test_own_scope_only_own_record(self, permission_service, db):
        _store(db, "u1", "users", can_update=True, scope=Scope.OWN)
        assert permission_service.can_access_record("u1", "users", Action.UPDATE, "u1") is True
        assert permission_service.can_access_record("u1", "users", Action.UPDATE, "u2") is False

    def test_all_scope_any_record(self, permission_service, db):
        _store(db, "u1", "users", can_update=True, scope=Scope.ALL)
        assert permission_service.can_access_record("u1", "users", Action.UPDATE, "u2") is True

    def test_flag_false_denies_even_with_all(self, permission_service, db):
        _store(db, "u1", "users", can_read=True, can_update=False, scope=Scope.ALL)
        assert permission_service.can_access_record("u1", "users", Action.UPDATE, "u1") is False

    def test_none_scope_denies(self, permission_service, db):
        _store(db, "u1", "users", can_read=True, scope=Scope.NONE)
        assert permission_service.can_access_record("u1", "users", Action.READ, "u1") is False


class TestGrantRevoke:
    def test_repeated_grant_leaves_one_row(self, permission_service, db):
        data = {"can_read": True, "can_update": True, "scope": Scope.ALL}
        permission_service.grant_permission("u1", "plants", data)
        permission_service.grant_permission("u1", "plants", data)
        rows = [p for (uid, table), p in db.permissions.items() if uid == "u1" and table == "plants"]
        assert len(rows) == 1
        assert rows[0].can_update is True and rows[0].scope is Scope.ALL

    def test_partial_grant_keeps_other_flags(self, permission_service, db):
        _store(db, "u1", "plants", can_read=True, scope=Scope.OWN)
        permission_service.grant_permission("u1", "plants", {"can_delete": True})
        row = db.permissions[("u1", "plants")]
        assert row.can_read is True and row.can_delete is True and row.scope is Scope.OWN

    def test_grant_visible_immediately(self, permission_service, permission_repo):
        check = _check("invoices", Action.READ, Scope.ALL)
        assert permission_service.can_perform("u1", check) is False
        permission_service.grant_permission("u1", "invoices", {"can_read": True, "scope": Scope.ALL})
        assert permission_service.can_perform("u1", check) is True
        assert permission_repo.loads == 2

    def test_revoke_then_denied(self, permission_service, db):
        _store(db, "u1", "invoices", can_read=True, scope=Scope.ALL)
        assert permission_service.can_perform("u1", _check("invoices")) is True
        assert permission_service.revoke_table_permissions("u1", "invoices") is True
        assert permission_service.can_perform("u1", _check("invoices")) is False

    def test_revoke_missing_row(self, permission_service):
        assert permission_service.revoke_table_permissions("u1", "invoices") is False


class TestPermissionMapCache:
    def test_second_lookup_served_from_cache(self, permission_service, permission_repo, db):
        _store(db, "u1", "users", can_read=True, scope=Scope.OWN)
        first = permission_service.get_user_permissions("u1")
        second = permission_service.get_user_permissions("u1")
        assert first == second == {"users": PermissionEntry(can_read=True, scope=Scope.OWN)}
        assert permission_repo.loads == 1

    def test_cache_is_per_user(self, permission_service, permission_repo):
        permission_service.get_user_permissions("u1")
        permission_service.get_user_permissions("u2")
        assert permission_repo.loads == 2
