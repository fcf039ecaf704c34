"""Pydantic schemas for audit log endpoints."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict
from domain.models import AuditAction, EntityType


class AuditEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    user_id: str
    action: AuditAction
    entity_type: EntityType
    entity_id: str
    changes: dict[str, Any]
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None


class AuditPageOut(BaseModel):
    items: list[AuditEntryOut]
    page: int
    limit: int
