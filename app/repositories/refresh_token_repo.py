"""
Repository for the refresh token registry.

Every issued refresh token is recorded by `jti`; logout and rotation mark
records revoked so a token can be refused before its natural expiry.
"""
from __future__ import annotations
from typing import Optional
from core.db import get_conn
from domain.models import RefreshTokenRecord


class RefreshTokenRepository:
    def add(self, record: RefreshTokenRecord) -> None:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO refresh_tokens (jti, user_id, expires_at)
                VALUES (%s, %s, %s)
                """,
                (record.jti, record.user_id, record.expires_at),
            )

    def find(self, jti: str) -> Optional[RefreshTokenRecord]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                SELECT jti, user_id, expires_at, revoked_at, replaced_by
                FROM refresh_tokens
                WHERE jti = %s
                """,
                (jti,),
            )
            r = cur.fetchone()
        if not r:
            return None
        return RefreshTokenRecord(
            jti=r[0], user_id=str(r[1]), expires_at=r[2], revoked_at=r[3], replaced_by=r[4],
        )

    def revoke(self, jti: str, replaced_by: Optional[str] = None) -> bool:
        """Mark one live token revoked. False if it was unknown or already revoked."""
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                UPDATE refresh_tokens
                SET revoked_at = now(), replaced_by = %s
                WHERE jti = %s AND revoked_at IS NULL
                """,
                (replaced_by, jti),
            )
            return cur.rowcount > 0

    def revoke_all_for_user(self, user_id: str) -> int:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                """
                UPDATE refresh_tokens
                SET revoked_at = now()
                WHERE user_id = %s AND revoked_at IS NULL AND expires_at > now()
                """,
                (user_id,),
            )
            return cur.rowcount
