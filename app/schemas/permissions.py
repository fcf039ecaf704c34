"""Pydantic schemas for permission endpoints."""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict
from domain.models import Scope


class PermissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    can_create: bool
    can_read: bool
    can_update: bool
    can_delete: bool
    scope: Scope


class PermissionGrantIn(BaseModel):
    """Flags to set on a (user, table) row; omitted fields keep their stored value."""
    model_config = ConfigDict(extra="forbid")

    can_create: Optional[bool] = None
    can_read: Optional[bool] = None
    can_update: Optional[bool] = None
    can_delete: Optional[bool] = None
    scope: Optional[Scope] = None
