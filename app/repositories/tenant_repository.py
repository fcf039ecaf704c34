# app/repositories/tenant_repository.py
from __future__ import annotations
import json
from typing import Any, Optional
from core.config import settings
from core.db import get_conn
from domain.models import Role, Tenant


class TenantRepository:
    """Tenants and roles. Active-tenant lookups are cached when a Redis client is given."""

    def __init__(self, cache: Any = None, ttl: int = settings.TENANT_CACHE_TTL_SEC) -> None:
        self.cache = cache
        self.ttl = ttl

    def find_active(self, tenant_id: str) -> Optional[Tenant]:
        cache_key = f"tenant:active:{tenant_id}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached:
                return Tenant(**json.loads(cached))
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute(
                "SELECT id, name, is_active FROM tenants WHERE id = %s AND is_active = true",
                (tenant_id,),
            )
            r = cur.fetchone()
        if not r:
            return None
        tenant = Tenant(id=str(r[0]), name=r[1], is_active=r[2])
        if self.cache is not None:
            self.cache.setex(cache_key, self.ttl, tenant.model_dump_json())
        return tenant

    def find_role(self, role_id: str) -> Optional[Role]:
        with get_conn() as conn, conn.cursor() as cur:
            cur.execute("SELECT id, name FROM roles WHERE id = %s", (role_id,))
            r = cur.fetchone()
        return Role(id=str(r[0]), name=r[1]) if r else None
