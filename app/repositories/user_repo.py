"""
Repository for users database operations.

Follows Layer 4 rules:
- Data access MUST be routed through repository layer
- No raw queries inside API routes
"""
from __future__ import annotations
from typing import Mapping, Optional
from psycopg2 import errors as pg_errors
from core.db import get_conn
from core.errors import Conflict
from domain.models import PermissionEntry, User

_USER_COLUMNS = """
    id, username, email, password_hash, first_name, last_name,
    tenant_id, role_id, is_active, created_at, updated_at, deleted_at, deleted_by
"""

# Columns a profile update may touch.
UPDATABLE_FIELDS = ("email", "first_name", "last_name", "password_hash")


def _row_to_user(row) -> User:
    (user_id, username, email, password_hash, first_name, last_name,
     tenant_id, role_id, is_active, created_at, updated_at, deleted_at, deleted_by) = row
    return User(
        id=str(user_id),
        username=username,
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        tenant_id=str(tenant_id),
        role_id=str(role_id) if role_id else None,
        is_active=is_active,
        created_at=created_at,
        updated_at=updated_at,
        deleted_at=deleted_at,
        deleted_by=str(deleted_by) if deleted_by else None,
    )


class UserRepository:
    def find_by_id(self, user_id: str) -> Optional[User]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cur.fetchone()
        return _row_to_user(row) if row else None

    def find_by_username(self, username: str) -> Optional[User]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username = %s", (username,))
            row = cur.fetchone()
        return _row_to_user(row) if row else None

    def find_by_identity(self, identity: str) -> Optional[User]:
        """Lookup by username or (case-insensitive) email."""
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users
                WHERE username = %s OR lower(email) = lower(%s)
                LIMIT 1
                """,
                (identity, identity),
            )
            row = cur.fetchone()
        return _row_to_user(row) if row else None

    def identity_taken(self, username: str, email: Optional[str]) -> bool:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                SELECT 1 FROM users
                WHERE username = %s OR (%s IS NOT NULL AND lower(email) = lower(%s))
                LIMIT 1
                """,
                (username, email, email),
            )
            return cur.fetchone() is not None

    def create_with_permissions(
        self,
        *,
        username: str,
        email: Optional[str],
        password_hash: str,
        first_name: Optional[str],
        last_name: Optional[str],
        tenant_id: str,
        role_id: Optional[str],
        permissions: Mapping[str, PermissionEntry] | None = None,
    ) -> User:
        """
        Insert the user and its initial permission rows in one transaction.

        If any permission insert fails the user row is rolled back too.
        """
        try:
            with get_conn() as conn, conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO users (username, email, password_hash, first_name, last_name,
                                       tenant_id, role_id, is_active)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, true)
                    RETURNING {_USER_COLUMNS}
                    """,
                    (username, email, password_hash, first_name, last_name, tenant_id, role_id),
                )
                user = _row_to_user(cur.fetchone())
                for table_name, perm in (permissions or {}).items():
                    cur.execute(
                        """
                        INSERT INTO user_permissions
                            (user_id, table_name, can_create, can_read, can_update, can_delete, scope)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        """,
                        (user.id, table_name, perm.can_create, perm.can_read,
                         perm.can_update, perm.can_delete, perm.scope.value),
                    )
        except pg_errors.UniqueViolation:
            raise Conflict("Username or email already registered")
        return user

    def update_profile(self, user_id: str, fields: dict) -> Optional[User]:
        data = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not data:
            return self.find_by_id(user_id)
        assignments = ", ".join(f"{col} = %s" for col in data)
        try:
            with get_conn() as conn, conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE users SET {assignments}, updated_at = now()
                    WHERE id = %s
                    RETURNING {_USER_COLUMNS}
                    """,
                    (*data.values(), user_id),
                )
                row = cur.fetchone()
        except pg_errors.UniqueViolation:
            raise Conflict("Email already registered")
        return _row_to_user(row) if row else None

    def list_all(self, include_inactive: bool = False) -> list[User]:
        where = "" if include_inactive else "WHERE is_active = true"
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users {where} ORDER BY created_at DESC")
            rows = cur.fetchall()
        return [_row_to_user(r) for r in rows]

    def list_by_tenant(self, tenant_id: str) -> list[User]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS} FROM users
                WHERE tenant_id = %s AND is_active = true
                ORDER BY created_at DESC
                """,
                (tenant_id,),
            )
            rows = cur.fetchall()
        return [_row_to_user(r) for r in rows]

    def soft_delete(self, user_id: str, deleted_by: str) -> bool:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                UPDATE users
                SET is_active = false, deleted_at = now(), deleted_by = %s, updated_at = now()
                WHERE id = %s AND is_active = true
                """,
                (deleted_by, user_id),
            )
            return cur.rowcount > 0
