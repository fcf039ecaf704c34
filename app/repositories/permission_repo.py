"""
Repository for user_permissions database operations.

One row per (user_id, table_name); absence of a row means no access.
"""
from __future__ import annotations
from core.db import get_conn
from domain.models import Scope, UserPermission

FLAG_COLUMNS = ("can_create", "can_read", "can_update", "can_delete", "scope")


class PermissionRepository:
    def find_many_by_user_id(self, user_id: str) -> list[UserPermission]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                SELECT user_id, table_name, can_create, can_read, can_update, can_delete, scope
                FROM user_permissions
                WHERE user_id = %s
                """,
                (user_id,),
            )
            rows = cur.fetchall()
        return [
            UserPermission(
                user_id=str(r[0]),
                table_name=r[1],
                can_create=r[2],
                can_read=r[3],
                can_update=r[4],
                can_delete=r[5],
                scope=Scope(r[6]),
            )
            for r in rows
        ]

    def upsert(self, user_id: str, table_name: str, data: dict) -> None:
        """
        Create the row with `data` (missing flags default to false / NONE) or
        overwrite only the supplied columns of the existing row.
        """
        data = {k: (v.value if isinstance(v, Scope) else v) for k, v in data.items() if k in FLAG_COLUMNS}
        cols = ["user_id", "table_name", *data]
        placeholders = ", ".join(["%s"] * len(cols))
        if data:
            on_conflict = "DO UPDATE SET " + ", ".join(f"{c} = EXCLUDED.{c}" for c in data)
        else:
            on_conflict = "DO NOTHING"
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO user_permissions ({", ".join(cols)})
                VALUES ({placeholders})
                ON CONFLICT (user_id, table_name) {on_conflict}
                """,
                (user_id, table_name, *data.values()),
            )

    def delete(self, user_id: str, table_name: str) -> bool:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                "DELETE FROM user_permissions WHERE user_id = %s AND table_name = %s",
                (user_id, table_name),
            )
            return cur.rowcount > 0
