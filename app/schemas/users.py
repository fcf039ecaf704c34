"""
Pydantic schemas for user endpoints.

Follows Layer 3 rules:
- Use dedicated response schemas that exclude sensitive fields
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

PASSWORD_MIN = 6
# bcrypt refuses passwords longer than 72 bytes; the limit is on the UTF-8 encoding, not characters.
PASSWORD_MAX_BYTES = 72


def check_password_bytes(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class UserOut(BaseModel):
    """Public view of a user; never carries the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tenant_id: str
    role_id: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserAdminOut(UserOut):
    """Admin listing also shows soft-delete stamps."""
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None


class UserUpdateIn(BaseModel):
    """Request schema for profile updates (all fields optional)."""
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=PASSWORD_MIN)

    password_within_bcrypt_limit = field_validator("password")(check_password_bytes)


class OkOut(BaseModel):
    ok: bool = True
