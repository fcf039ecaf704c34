"""
Authentication and JWT token management module.

Follows Layer 1 rules:
- Sign tokens with strong, private signing keys from environment variables
- NEVER hardcode secrets or keys in the repository
- Include user_id, tenant_id, and role in JWT claims
- Access and refresh tokens are signed with DIFFERENT secrets
- Only accept tokens via secure headers (Authorization: Bearer <token>)
"""
from __future__ import annotations
import datetime
import uuid
from typing import Any, Literal, Optional
import jwt
from fastapi import Request
from pydantic import BaseModel
from core.config import settings
from core.errors import TokenExpired, TokenMalformed, Unauthorized

TokenType = Literal["access", "refresh"]

_REQUIRED_CLAIMS = ["sub", "exp", "iat", "jti", "typ"]


class Authed(BaseModel):
    """Authenticated user context resolved by the guard chain."""
    user_id: str
    tenant_id: str
    role_id: Optional[str] = None
    username: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_jti: str
    refresh_expires_at: datetime.datetime


def _secret_for(token_type: TokenType) -> str:
    return settings.JWT_ACCESS_SECRET if token_type == "access" else settings.JWT_REFRESH_SECRET


def _ttl_for(token_type: TokenType) -> int:
    return settings.JWT_ACCESS_TTL_SEC if token_type == "access" else settings.JWT_REFRESH_TTL_SEC


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def sign_token(
    claims: dict[str, Any],
    secret: str,
    ttl: int,
    now: Optional[datetime.datetime] = None,
) -> str:
    """
    Sign a JWT carrying `claims`, valid for `ttl` seconds from `now`.

    Args:
        claims: Identity claims (sub, tenant_id, role_id, username, typ, jti)
        secret: HMAC signing key
        ttl: Lifetime in seconds
        now: Issuance instant (defaults to current UTC time)

    Returns:
        Encoded JWT token string
    """
    now = now or utcnow()
    payload = {
        **claims,
        "iat": now,
        "exp": now + datetime.timedelta(seconds=ttl),
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, secret: str, expected_type: TokenType) -> dict[str, Any]:
    """
    Verify signature, expiry and token kind.

    Raises:
        TokenExpired: `exp` has elapsed
        TokenMalformed: bad signature, missing claims or wrong token kind
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError:
        raise TokenMalformed()

    if payload.get("typ") != expected_type:
        raise TokenMalformed()
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    return decode_token(token, settings.JWT_ACCESS_SECRET, "access")


def decode_refresh_token(token: str) -> dict[str, Any]:
    return decode_token(token, settings.JWT_REFRESH_SECRET, "refresh")


def issue_token_pair(
    user_id: str,
    tenant_id: str,
    role_id: Optional[str],
    username: str,
    now: Optional[datetime.datetime] = None,
) -> TokenPair:
    """
    Mint an access + refresh token pair bound to the same identity.

    `now` is read once so both tokens share the same `iat`.
    """
    now = now or utcnow()
    identity = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role_id": str(role_id) if role_id else None,
        "username": username,
    }
    refresh_jti = uuid.uuid4().hex
    access = sign_token(
        {**identity, "typ": "access", "jti": uuid.uuid4().hex},
        _secret_for("access"),
        _ttl_for("access"),
        now,
    )
    refresh = sign_token(
        {**identity, "typ": "refresh", "jti": refresh_jti},
        _secret_for("refresh"),
        _ttl_for("refresh"),
        now,
    )
    return TokenPair(
        access_token=access,
        refresh_token=refresh,
        expires_in=_ttl_for("access"),
        refresh_jti=refresh_jti,
        refresh_expires_at=now + datetime.timedelta(seconds=_ttl_for("refresh")),
    )


def extract_bearer(req: Request) -> str:
    """
    Return the token from `Authorization: Bearer <token>`.

    Raises:
        Unauthorized: header missing or not a bearer credential
    """
    auth = req.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        raise Unauthorized("Missing bearer token")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized("Missing bearer token")
    return token
