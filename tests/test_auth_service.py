"""
Authentication flow tests: register, login, refresh rotation, logout.
"""
from unittest.mock import patch

import pytest

from core.auth import Authed, decode_access_token, decode_refresh_token, issue_token_pair
from core.errors import Conflict, NotFound, Unauthorized
from domain.models import AuditAction, EntityType, Scope
from services.auth_service import _DUMMY_HASH


def _register(svc, **overrides):
    data = {"username": "ana", "password": "secret-pass", "tenant_id": "tenant-1", "email": "ana@example.com"}
    data.update(overrides)
    return svc.register(**data)


def _authed(user) -> Authed:
    return Authed(user_id=user.id, tenant_id=user.tenant_id, username=user.username)


class TestRegister:
    def test_creates_user_with_self_read_permission(self, auth_service, db):
        result = _register(auth_service, first_name="Ana", last_name="Ruiz")
        user = db.users[result.user.id]
        assert user.username == "ana"
        assert user.password_hash != "secret-pass"
        perms = {table: p for (uid, table), p in db.permissions.items() if uid == user.id}
        assert list(perms) == ["users"]
        assert perms["users"].can_read is True
        assert perms["users"].can_update is False
        assert perms["users"].scope is Scope.OWN

    def test_returns_tokens_for_new_user(self, auth_service, db):
        result = _register(auth_service)
        assert decode_access_token(result.tokens.access_token)["sub"] == result.user.id
        assert result.tokens.refresh_jti in db.refresh_tokens

    def test_audit_entry_written(self, auth_service, db):
        result = _register(auth_service)
        assert [(e.action, e.entity_type, e.entity_id) for e in db.audit] == [
            (AuditAction.CREATE, EntityType.USER, result.user.id)
        ]

    def test_duplicate_username(self, auth_service):
        _register(auth_service)
        with pytest.raises(Conflict):
            _register(auth_service, email="other@example.com")

    def test_duplicate_email_case_insensitive(self, auth_service):
        _register(auth_service)
        with pytest.raises(Conflict):
            _register(auth_service, username="ana2", email="ANA@example.com")

    @pytest.mark.parametrize("tenant_id", ["missing", "tenant-off"])
    def test_tenant_must_be_active(self, auth_service, db, tenant_id):
        with pytest.raises(NotFound):
            _register(auth_service, tenant_id=tenant_id)
        assert db.users == {}

    def test_unknown_role(self, auth_service, db):
        with pytest.raises(NotFound):
            _register(auth_service, role_id="role-x")
        assert db.users == {}

    def test_known_role_kept(self, auth_service):
        assert _register(auth_service, role_id="role-1").user.role_id == "role-1"

    def test_failed_permission_insert_leaves_no_user(self, auth_service, db):
        db.fail_permission_insert = True
        with pytest.raises(RuntimeError):
            _register(auth_service)
        assert db.users == {}
        assert db.permissions == {}
        assert db.refresh_tokens == {}


class TestLogin:
    def test_register_then_login(self, auth_service):
        registered = _register(auth_service)
        result = auth_service.login("ana", "secret-pass")
        assert result.user.id == registered.user.id
        assert decode_access_token(result.tokens.access_token)["sub"] == registered.user.id

    def test_login_by_email(self, auth_service):
        _register(auth_service)
        assert auth_service.login("Ana@Example.com", "secret-pass").user.username == "ana"

    def test_login_records_audit_and_refresh_token(self, auth_service, db):
        _register(auth_service)
        result = auth_service.login("ana", "secret-pass")
        assert db.audit[-1].action is AuditAction.LOGIN
        assert result.tokens.refresh_jti in db.refresh_tokens

    def test_unknown_user(self, auth_service):
        with pytest.raises(Unauthorized) as exc:
            auth_service.login("nobody", "secret-pass")
        assert exc.value.message == "Invalid credentials"

    def test_unknown_user_still_checks_a_hash(self, auth_service):
        with patch("services.auth_service.verify_password", return_value=False) as verify:
            with pytest.raises(Unauthorized):
                auth_service.login("nobody", "secret-pass")
        verify.assert_called_once_with("secret-pass", _DUMMY_HASH)

    def test_wrong_password(self, auth_service):
        _register(auth_service)
        with pytest.raises(Unauthorized) as exc:
            auth_service.login("ana", "wrong-pass")
        assert exc.value.message == "Invalid credentials"

    def test_inactive_user(self, auth_service, db):
        db.add_user("bea", "secret-pass", is_active=False)
        with pytest.raises(Unauthorized) as exc:
            auth_service.login("bea", "secret-pass")
        assert exc.value.message == "Invalid credentials"

    def test_inactive_tenant(self, auth_service, db):
        db.add_user("carl", "secret-pass", tenant_id="tenant-off")
        with pytest.raises(Unauthorized) as exc:
            auth_service.login("carl", "secret-pass")
        assert exc.value.message == "Invalid credentials"


class TestRefresh:
    def test_rotation_revokes_old_token(self, auth_service, db):
        first = _register(auth_service).tokens
        second = auth_service.refresh(first.refresh_token)
        old = db.refresh_tokens[first.refresh_jti]
        assert old.is_revoked
        assert old.replaced_by == second.refresh_jti
        assert not db.refresh_tokens[second.refresh_jti].is_revoked
        assert decode_refresh_token(second.refresh_token)["jti"] == second.refresh_jti

    def test_reuse_revokes_every_token_of_user(self, auth_service, db):
        first = _register(auth_service).tokens
        other_session = auth_service.login("ana", "secret-pass").tokens
        second = auth_service.refresh(first.refresh_token)

        with pytest.raises(Unauthorized) as exc:
            auth_service.refresh(first.refresh_token)
        assert exc.value.message == "Invalid refresh token"
        assert db.refresh_tokens[second.refresh_jti].is_revoked
        assert db.refresh_tokens[other_session.refresh_jti].is_revoked

    def test_access_token_rejected(self, auth_service):
        tokens = _register(auth_service).tokens
        with pytest.raises(Unauthorized) as exc:
            auth_service.refresh(tokens.access_token)
        assert exc.value.message == "Invalid refresh token"

    def test_unrecorded_token_rejected(self, auth_service):
        user = _register(auth_service).user
        stray = issue_token_pair(user.id, user.tenant_id, None, user.username)
        with pytest.raises(Unauthorized):
            auth_service.refresh(stray.refresh_token)

    def test_deactivated_user_rejected(self, auth_service, db):
        result = _register(auth_service)
        db.users[result.user.id] = result.user.model_copy(update={"is_active": False})
        with pytest.raises(Unauthorized):
            auth_service.refresh(result.tokens.refresh_token)


class TestLogout:
    def test_revokes_given_token(self, auth_service, db):
        result = _register(auth_service)
        other = auth_service.login("ana", "secret-pass").tokens
        assert auth_service.logout(_authed(result.user), result.tokens.refresh_token) == 1
        assert db.refresh_tokens[result.tokens.refresh_jti].is_revoked
        assert not db.refresh_tokens[other.refresh_jti].is_revoked
        assert db.audit[-1].action is AuditAction.LOGOUT

    def test_without_token_revokes_all(self, auth_service, db):
        result = _register(auth_service)
        auth_service.login("ana", "secret-pass")
        assert auth_service.logout(_authed(result.user)) == 2
        assert all(r.is_revoked for r in db.refresh_tokens.values())

    def test_refresh_after_logout_fails(self, auth_service):
        result = _register(auth_service)
        auth_service.logout(_authed(result.user), result.tokens.refresh_token)
        with pytest.raises(Unauthorized):
            auth_service.refresh(result.tokens.refresh_token)

    def test_foreign_token_rejected(self, auth_service):
        ana = _register(auth_service)
        bea = _register(auth_service, username="bea", email="bea@example.com")
        with pytest.raises(Unauthorized):
            auth_service.logout(_authed(ana.user), bea.tokens.refresh_token)


class TestProfile:
    def test_missing_user(self, auth_service):
        with pytest.raises(NotFound):
            auth_service.get_profile("nope")
