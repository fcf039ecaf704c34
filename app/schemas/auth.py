"""
Pydantic schemas for authentication endpoints.

Follows Layer 3 rules:
- ALWAYS use Pydantic models for request/response
- Never expose password hashes or token identifiers
"""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator
from schemas.users import PASSWORD_MIN, UserOut, check_password_bytes


class RegisterIn(BaseModel):
    """Request schema for self-registration."""
    username: str = Field(..., min_length=1, max_length=50, description="Unique login name")
    email: Optional[EmailStr] = Field(default=None, description="Optional unique email address")
    password: str = Field(..., min_length=PASSWORD_MIN, description="Plaintext password")
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    tenant_id: str = Field(..., min_length=1, description="Tenant the user joins")
    role_id: Optional[str] = Field(default=None, description="Optional role identifier")

    password_within_bcrypt_limit = field_validator("password")(check_password_bytes)


class LoginIn(BaseModel):
    """Request schema for user login."""
    identity: str = Field(..., min_length=1, description="Username or email address")
    password: str = Field(..., min_length=1, description="User password")

    password_within_bcrypt_limit = field_validator("password")(check_password_bytes)


class RefreshIn(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutIn(BaseModel):
    refresh_token: Optional[str] = Field(default=None, description="Token to revoke; all of the caller's when omitted")


class TokensOut(BaseModel):
    """Response schema for a freshly minted token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class AuthOut(TokensOut):
    """Response schema for successful register/login."""
    user: UserOut


class LogoutOut(BaseModel):
    ok: bool
    message: str
