"""
Audit trail service.

Writes one audit_logs row per security-relevant change and serves
paginated, tenant-scoped reads of the trail.
"""
from __future__ import annotations
from typing import Any, Optional
from core.logger import get_logger
from domain.models import AuditAction, AuditEntry, EntityType
from repositories.audit_repo import AuditLogRepository

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


class AuditService:
    def __init__(self, repo: AuditLogRepository) -> None:
        self.repo = repo

    def record(
        self,
        *,
        tenant_id: str,
        user_id: str,
        action: AuditAction,
        entity_type: EntityType,
        entity_id: str,
        changes: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditEntry:
        entry = self.repo.create(AuditEntry(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=changes or {},
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        logger.debug("Audit %s %s/%s by %s", action.value, entity_type.value, entity_id, user_id)
        return entry

    def list_by_tenant(self, tenant_id: str, page: int = 1, limit: int = 50) -> list[AuditEntry]:
        """
        One page of a tenant's trail, newest first.

        Args:
            tenant_id: Tenant whose entries are listed
            page: 1-based page number
            limit: Page size, capped at MAX_PAGE_SIZE
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = (max(page, 1) - 1) * limit
        return self.repo.list_by_tenant(tenant_id, offset=offset, limit=limit)

    def list_by_user(self, user_id: str) -> list[AuditEntry]:
        return self.repo.list_by_user(user_id)
