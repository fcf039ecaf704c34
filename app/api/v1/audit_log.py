"""
Audit log endpoints.

Follows Layer 6 rules:
- Audit entries are read-only over HTTP
- Listings are paginated and scoped by tenant or user
"""
from __future__ import annotations
from fastapi import APIRouter, Depends, Query
from core.dependencies import get_audit_service
from schemas.audit import AuditEntryOut, AuditPageOut
from services.audit_service import MAX_PAGE_SIZE, AuditService

router = APIRouter(prefix="/api/v1/audit-log", tags=["audit-log"])


@router.get("/user/{user_id}", response_model=list[AuditEntryOut], name="audit_log.by_user")
def list_by_user(user_id: str, svc: AuditService = Depends(get_audit_service)) -> list[AuditEntryOut]:
    return [AuditEntryOut.model_validate(e) for e in svc.list_by_user(user_id)]


@router.get("/{tenant_id}", response_model=AuditPageOut, name="audit_log.by_tenant")
def list_by_tenant(
    tenant_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    svc: AuditService = Depends(get_audit_service),
) -> AuditPageOut:
    entries = svc.list_by_tenant(tenant_id, page=page, limit=limit)
    return AuditPageOut(items=[AuditEntryOut.model_validate(e) for e in entries], page=page, limit=limit)
