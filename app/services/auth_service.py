"""
Authentication service: registration, login, refresh rotation and logout.

Follows Layer 1 and Layer 6 rules:
- Validates credentials securely
- Returns minimal information on failure (no "user not found vs wrong password" distinction)
- Logs security events (login attempts, refresh reuse) with the real reason server side
- NEVER logs plaintext passwords, hashes or tokens
"""
from __future__ import annotations
from typing import Optional
from pydantic import BaseModel
from core.auth import Authed, TokenPair, decode_refresh_token, issue_token_pair
from core.errors import Conflict, NotFound, TokenInvalid, Unauthorized
from core.logger import log_security_event
from core.security import hash_password, verify_password
from domain.models import AuditAction, EntityType, RefreshTokenRecord, User
from repositories.refresh_token_repo import RefreshTokenRepository
from repositories.tenant_repository import TenantRepository
from repositories.user_repo import UserRepository
from services.audit_service import AuditService
from services.permissions_service import SELF_REGISTRATION_PERMISSIONS

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH = "Invalid refresh token"

# Checked against when the identity is unknown so every login pays one bcrypt verify.
_DUMMY_HASH = hash_password("placeholder-password-never-issued")


class AuthResult(BaseModel):
    user: User
    tokens: TokenPair


class ClientInfo(BaseModel):
    """Request metadata copied into the audit trail."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        tenants: TenantRepository,
        refresh_tokens: RefreshTokenRepository,
        audit: AuditService,
    ) -> None:
        self.users = users
        self.tenants = tenants
        self.refresh_tokens = refresh_tokens
        self.audit = audit

    def _issue(self, user: User) -> TokenPair:
        """Mint a pair for `user` and record its refresh token."""
        pair = issue_token_pair(user.id, user.tenant_id, user.role_id, user.username)
        self.refresh_tokens.add(RefreshTokenRecord(
            jti=pair.refresh_jti,
            user_id=user.id,
            expires_at=pair.refresh_expires_at,
        ))
        return pair

    def register(
        self,
        *,
        username: str,
        password: str,
        tenant_id: str,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role_id: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> AuthResult:
        """
        Create a user with the self-registration permission set and sign it in.

        Raises:
            NotFound: tenant missing or inactive, or role_id unknown
            Conflict: username or email already registered
        """
        client = client or ClientInfo()
        if self.tenants.find_active(tenant_id) is None:
            raise NotFound("Tenant not found")
        if role_id is not None and self.tenants.find_role(role_id) is None:
            raise NotFound("Role not found")
        if self.users.identity_taken(username, email):
            log_security_event(
                action="register",
                result="failure",
                tenant_id=tenant_id,
                meta={"reason": "identity_taken"},
            )
            raise Conflict("Username or email already registered")

        user = self.users.create_with_permissions(
            username=username,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            tenant_id=tenant_id,
            role_id=role_id,
            permissions=SELF_REGISTRATION_PERMISSIONS,
        )
        tokens = self._issue(user)

        self.audit.record(
            tenant_id=user.tenant_id,
            user_id=user.id,
            action=AuditAction.CREATE,
            entity_type=EntityType.USER,
            entity_id=user.id,
            changes={"username": user.username, "source": "register"},
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        log_security_event(action="register", result="success", user_id=user.id, tenant_id=user.tenant_id)
        return AuthResult(user=user, tokens=tokens)

    def login(self, identity: str, password: str, client: Optional[ClientInfo] = None) -> AuthResult:
        """
        Authenticate by username or email.

        Every failure raises the same Unauthorized so callers cannot probe
        which accounts exist.
        """
        client = client or ClientInfo()
        user = self.users.find_by_identity(identity)
        reason = None
        if user is None:
            verify_password(password, _DUMMY_HASH)
            reason = "user_not_found"
        elif not verify_password(password, user.password_hash):
            reason = "invalid_password"
        elif not user.is_active:
            reason = "user_disabled"
        elif self.tenants.find_active(user.tenant_id) is None:
            reason = "tenant_inactive"

        if reason is not None:
            log_security_event(
                action="login",
                result="failure",
                user_id=user.id if user else None,
                tenant_id=user.tenant_id if user else None,
                meta={"reason": reason, "ip": client.ip_address},
                level="warning",
            )
            raise Unauthorized(INVALID_CREDENTIALS)

        tokens = self._issue(user)
        self.audit.record(
            tenant_id=user.tenant_id,
            user_id=user.id,
            action=AuditAction.LOGIN,
            entity_type=EntityType.USER,
            entity_id=user.id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        log_security_event(action="login", result="success", user_id=user.id, tenant_id=user.tenant_id)
        return AuthResult(user=user, tokens=tokens)

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Rotate a refresh token: the presented one is revoked and a new pair issued.

        Presenting an already revoked token is treated as theft and revokes
        every live refresh token of its owner.
        """
        try:
            payload = decode_refresh_token(refresh_token)
        except TokenInvalid as e:
            log_security_event(action="refresh", result="failure", meta={"reason": e.message})
            raise Unauthorized(INVALID_REFRESH)

        user_id, jti = payload["sub"], payload["jti"]
        record = self.refresh_tokens.find(jti)
        if record is None or record.user_id != user_id:
            log_security_event(action="refresh", result="failure", user_id=user_id,
                               meta={"reason": "unknown_token"}, level="warning")
            raise Unauthorized(INVALID_REFRESH)

        if record.is_revoked:
            revoked = self.refresh_tokens.revoke_all_for_user(user_id)
            log_security_event(action="refresh", result="denied", user_id=user_id,
                               meta={"reason": "token_reuse", "revoked": revoked}, level="warning")
            raise Unauthorized(INVALID_REFRESH)

        user = self.users.find_by_id(user_id)
        if user is None or not user.is_active or self.tenants.find_active(user.tenant_id) is None:
            self.refresh_tokens.revoke(jti)
            log_security_event(action="refresh", result="failure", user_id=user_id,
                               meta={"reason": "user_unavailable"}, level="warning")
            raise Unauthorized(INVALID_REFRESH)

        tokens = issue_token_pair(user.id, user.tenant_id, user.role_id, user.username)
        # A concurrent rotation of the same token loses here.
        if not self.refresh_tokens.revoke(jti, replaced_by=tokens.refresh_jti):
            log_security_event(action="refresh", result="denied", user_id=user_id,
                               meta={"reason": "concurrent_rotation"}, level="warning")
            raise Unauthorized(INVALID_REFRESH)
        self.refresh_tokens.add(RefreshTokenRecord(
            jti=tokens.refresh_jti,
            user_id=user.id,
            expires_at=tokens.refresh_expires_at,
        ))
        log_security_event(action="refresh", result="success", user_id=user.id, tenant_id=user.tenant_id)
        return tokens

    def get_profile(self, user_id: str) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def logout(
        self,
        auth: Authed,
        refresh_token: Optional[str] = None,
        client: Optional[ClientInfo] = None,
    ) -> int:
        """
        Revoke the given refresh token, or every live one of the caller.

        Access tokens already issued stay valid until they expire.

        Returns:
            Number of refresh tokens revoked
        """
        client = client or ClientInfo()
        if refresh_token:
            try:
                payload = decode_refresh_token(refresh_token)
            except TokenInvalid:
                raise Unauthorized(INVALID_REFRESH)
            if payload["sub"] != auth.user_id:
                raise Unauthorized(INVALID_REFRESH)
            revoked = 1 if self.refresh_tokens.revoke(payload["jti"]) else 0
        else:
            revoked = self.refresh_tokens.revoke_all_for_user(auth.user_id)

        self.audit.record(
            tenant_id=auth.tenant_id,
            user_id=auth.user_id,
            action=AuditAction.LOGOUT,
            entity_type=EntityType.USER,
            entity_id=auth.user_id,
            changes={"revoked_refresh_tokens": revoked},
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )
        log_security_event(action="logout", result="success", user_id=auth.user_id,
                           tenant_id=auth.tenant_id, meta={"revoked": revoked})
        return revoked
