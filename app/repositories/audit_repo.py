"""
Repository for audit_logs database operations.

All listing queries are scoped by tenant or user.
"""
from __future__ import annotations
from psycopg2.extras import Json
from core.db import get_conn
from domain.models import AuditAction, AuditEntry, EntityType

_AUDIT_COLUMNS = """
    id, tenant_id, user_id, action, entity_type, entity_id,
    changes, ip_address, user_agent, timestamp
"""


def _row_to_entry(r) -> AuditEntry:
    return AuditEntry(
        id=str(r[0]),
        tenant_id=str(r[1]),
        user_id=str(r[2]),
        action=AuditAction(r[3]),
        entity_type=EntityType(r[4]),
        entity_id=str(r[5]),
        changes=r[6] or {},
        ip_address=r[7],
        user_agent=r[8],
        timestamp=r[9],
    )


class AuditLogRepository:
    def create(self, entry: AuditEntry) -> AuditEntry:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO audit_logs
                    (tenant_id, user_id, action, entity_type, entity_id, changes, ip_address, user_agent)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_AUDIT_COLUMNS}
                """,
                (entry.tenant_id, entry.user_id, entry.action.value, entry.entity_type.value,
                 entry.entity_id, Json(entry.changes), entry.ip_address, entry.user_agent),
            )
            return _row_to_entry(cur.fetchone())

    def list_by_tenant(self, tenant_id: str, offset: int = 0, limit: int = 50) -> list[AuditEntry]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_AUDIT_COLUMNS} FROM audit_logs
                WHERE tenant_id = %s
                ORDER BY timestamp DESC
                LIMIT %s OFFSET %s
                """,
                (tenant_id, limit, offset),
            )
            rows = cur.fetchall()
        return [_row_to_entry(r) for r in rows]

    def list_by_user(self, user_id: str) -> list[AuditEntry]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                f"""
                SELECT {_AUDIT_COLUMNS} FROM audit_logs
                WHERE user_id = %s
                ORDER BY timestamp DESC
                """,
                (user_id,),
            )
            rows = cur.fetchall()
        return [_row_to_entry(r) for r in rows]
