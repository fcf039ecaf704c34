"""
Permission evaluation service.

Answers "can user U perform action A on table T (with scope S)?" from the
user's permission map:

- Table names are checked against a fixed allow-list before anything else
- No row for a table means every action on it is denied
- An ALL requirement needs stored scope ALL; an OWN requirement is met by OWN or ALL
- Grant/revoke drop the user's cached map before returning
"""
from __future__ import annotations
from typing import Optional
from core.cache import PermissionCache
from core.errors import Forbidden, InvalidTable
from core.logger import get_logger, log_security_event
from domain.models import (
    Action,
    PermissionCheck,
    PermissionEntry,
    PermissionMap,
    Scope,
)
from repositories.permission_repo import PermissionRepository

logger = get_logger(__name__)

# SQL table names a permission may refer to. Add new entity tables here.
ALLOWED_TABLES = frozenset({
    "audit_logs",
    "clients",
    "enums",
    "invoices",
    "messages",
    "plants",
    "purchase_orders",
    "tenants",
    "user_permissions",
    "users",
})

# Granted on self-registration: read own user record.
SELF_REGISTRATION_PERMISSIONS: PermissionMap = {
    "users": PermissionEntry(can_read=True, scope=Scope.OWN),
}


def validate_table_name(table_name: str) -> str:
    if table_name not in ALLOWED_TABLES:
        logger.warning("Invalid table name: %s", table_name)
        raise InvalidTable(table_name)
    return table_name


def scope_satisfies(stored: Scope, required: Optional[Scope]) -> bool:
    """Whether a stored scope is broad enough for the required one."""
    if required is None:
        return True
    if required is Scope.ALL:
        return stored is Scope.ALL
    if required is Scope.OWN:
        return stored in (Scope.OWN, Scope.ALL)
    return True


class PermissionService:
    def __init__(self, repo: PermissionRepository, cache: PermissionCache) -> None:
        self.repo = repo
        self.cache = cache

    def get_user_permissions(self, user_id: str) -> PermissionMap:
        """Full permission map of a user, served from cache when fresh."""
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        perms: PermissionMap = {
            r.table_name: PermissionEntry(
                can_create=r.can_create,
                can_read=r.can_read,
                can_update=r.can_update,
                can_delete=r.can_delete,
                scope=r.scope,
            )
            for r in self.repo.find_many_by_user_id(user_id)
        }
        self.cache.set(user_id, perms)
        return perms

    def can_perform(self, user_id: str, check: PermissionCheck) -> bool:
        validate_table_name(check.table_name)

        entry = self.get_user_permissions(user_id).get(check.table_name)
        if entry is None:
            return False
        if not entry.allows(check.action):
            return False
        if not scope_satisfies(entry.scope, check.scope):
            return False

        logger.debug("User %s can %s on %s", user_id, check.action.value, check.table_name)
        return True

    def require(self, user_id: str, check: PermissionCheck) -> None:
        """Raise Forbidden unless `can_perform` allows the check."""
        if not self.can_perform(user_id, check):
            raise Forbidden(f"You do not have permission to {check.action.value} on {check.table_name}")

    def can_access_record(
        self,
        user_id: str,
        table_name: str,
        action: Action,
        record_owner_id: str,
    ) -> bool:
        """Row-level check: ALL reaches any record, OWN only the caller's."""
        validate_table_name(table_name)

        entry = self.get_user_permissions(user_id).get(table_name)
        if entry is None or not entry.allows(action):
            return False
        if entry.scope is Scope.ALL:
            return True
        if entry.scope is Scope.OWN:
            return record_owner_id == user_id
        return False

    def grant_permission(
        self,
        user_id: str,
        table_name: str,
        data: dict,
        granted_by: Optional[str] = None,
    ) -> None:
        """
        Upsert the (user, table) row with the supplied flags.

        Repeating the same grant leaves a single identical row.
        """
        validate_table_name(table_name)
        try:
            self.repo.upsert(user_id, table_name, data)
        finally:
            self.cache.invalidate(user_id)
        log_security_event(
            action="permission_grant",
            result="success",
            user_id=granted_by,
            meta={"target_user_id": user_id, "table": table_name,
                  "changes": {k: getattr(v, "value", v) for k, v in data.items()}},
        )

    def revoke_table_permissions(
        self,
        user_id: str,
        table_name: str,
        revoked_by: Optional[str] = None,
    ) -> bool:
        validate_table_name(table_name)
        try:
            removed = self.repo.delete(user_id, table_name)
        finally:
            self.cache.invalidate(user_id)
        log_security_event(
            action="permission_revoke",
            result="success" if removed else "noop",
            user_id=revoked_by,
            meta={"target_user_id": user_id, "table": table_name},
        )
        return removed

