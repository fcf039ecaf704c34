"""
User management service.

Follows Layer 2 rules:
- Route-level permission is enforced by the guard chain
- Row-level decisions (whose record may be touched) are made here
"""
from __future__ import annotations
from typing import Any
from core.auth import Authed
from core.errors import Forbidden, NotFound
from core.logger import log_security_event
from core.security import hash_password
from domain.models import Action, AuditAction, EntityType, PermissionCheck, Scope, User
from repositories.user_repo import UserRepository
from services.audit_service import AuditService
from services.permissions_service import PermissionService

USERS_TABLE = "users"


def _profile_fields(changes: dict[str, Any]) -> dict[str, Any]:
    """Map an update payload to stored columns; a new password is hashed."""
    fields = {k: v for k, v in changes.items() if v is not None}
    password = fields.pop("password", None)
    if password is not None:
        fields["password_hash"] = hash_password(password)
    return fields


def _audit_changes(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: ("<changed>" if k == "password_hash" else v) for k, v in fields.items()}


class UsersService:
    def __init__(
        self,
        users: UserRepository,
        permissions: PermissionService,
        audit: AuditService,
    ) -> None:
        self.users = users
        self.permissions = permissions
        self.audit = audit

    def get_by_id(self, user_id: str) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def get_by_username(self, username: str) -> User:
        user = self.users.find_by_username(username)
        if user is None:
            raise NotFound("User not found")
        return user

    def list_visible(self, auth: Authed) -> list[User]:
        """Everyone for callers holding users:read:ALL, otherwise just the caller."""
        can_read_all = self.permissions.can_perform(
            auth.user_id, PermissionCheck(table_name=USERS_TABLE, action=Action.READ, scope=Scope.ALL)
        )
        if can_read_all:
            return self.users.list_all()
        return [self.get_by_id(auth.user_id)]

    def list_all_admin(self) -> list[User]:
        """Every user, deactivated ones included."""
        return self.users.list_all(include_inactive=True)

    def list_by_tenant(self, tenant_id: str) -> list[User]:
        return self.users.list_by_tenant(tenant_id)

    def _apply_update(self, auth: Authed, target: User, changes: dict[str, Any]) -> User:
        fields = _profile_fields(changes)
        updated = self.users.update_profile(target.id, fields)
        if updated is None:
            raise NotFound("User not found")
        if fields:
            self.audit.record(
                tenant_id=auth.tenant_id,
                user_id=auth.user_id,
                action=AuditAction.UPDATE,
                entity_type=EntityType.USER,
                entity_id=target.id,
                changes=_audit_changes(fields),
            )
        return updated

    def update_me(self, auth: Authed, changes: dict[str, Any]) -> User:
        return self._apply_update(auth, self.get_by_id(auth.user_id), changes)

    def update_by_username(self, auth: Authed, username: str, changes: dict[str, Any]) -> User:
        """
        Update another user's profile.

        Callers with users:update:ALL may edit anyone; OWN only themselves.

        Raises:
            NotFound: no such username
            Forbidden: the caller's scope does not reach the target record
        """
        target = self.get_by_username(username)
        if not self.permissions.can_access_record(auth.user_id, USERS_TABLE, Action.UPDATE, target.id):
            log_security_event(
                action="user_update",
                result="denied",
                user_id=auth.user_id,
                tenant_id=auth.tenant_id,
                meta={"target_user_id": target.id},
                level="warning",
            )
            raise Forbidden("You do not have permission to update this user")
        return self._apply_update(auth, target, changes)

    def soft_delete(self, auth: Authed, username: str) -> None:
        """Deactivate a user and stamp who deleted it; the row is kept."""
        target = self.get_by_username(username)
        if not self.users.soft_delete(target.id, auth.user_id):
            raise NotFound("User not found")
        self.audit.record(
            tenant_id=auth.tenant_id,
            user_id=auth.user_id,
            action=AuditAction.DELETE,
            entity_type=EntityType.USER,
            entity_id=target.id,
            changes={"is_active": False},
        )
        log_security_event(
            action="user_delete",
            result="success",
            user_id=auth.user_id,
            tenant_id=auth.tenant_id,
            meta={"target_user_id": target.id},
        )
