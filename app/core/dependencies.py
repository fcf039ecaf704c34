"""
Dependency providers for repositories, services and the caller identity.

Routes and guards obtain collaborators only through these functions so tests
can swap any of them via `app.dependency_overrides`.
"""
from __future__ import annotations
from functools import lru_cache
from fastapi import Depends, Request
from core.auth import Authed
from core.cache import MemoryPermissionCache, PermissionCache, RedisPermissionCache
from core.config import settings
from core.errors import Unauthorized
from core.redis import get_redis
from repositories.audit_repo import AuditLogRepository
from repositories.permission_repo import PermissionRepository
from repositories.refresh_token_repo import RefreshTokenRepository
from repositories.tenant_repository import TenantRepository
from repositories.user_repo import UserRepository
from services.audit_service import AuditService
from services.auth_service import AuthService
from services.permissions_service import PermissionService
from services.users_service import UsersService


def _redis_enabled() -> bool:
    return settings.PERMISSION_CACHE_BACKEND == "redis"


def get_user_repository() -> UserRepository:
    return UserRepository()


@lru_cache
def get_tenant_repository() -> TenantRepository:
    if _redis_enabled():
        return TenantRepository(cache=get_redis())
    return TenantRepository()


def get_permission_repository() -> PermissionRepository:
    return PermissionRepository()


def get_refresh_token_repository() -> RefreshTokenRepository:
    return RefreshTokenRepository()


def get_audit_repository() -> AuditLogRepository:
    return AuditLogRepository()


@lru_cache
def get_permission_cache() -> PermissionCache:
    """Process-wide cache instance; the backend is picked from settings."""
    if _redis_enabled():
        return RedisPermissionCache(get_redis(), ttl=settings.PERMISSION_CACHE_TTL_SEC)
    return MemoryPermissionCache(ttl=settings.PERMISSION_CACHE_TTL_SEC)


def get_permission_service(
    repo: PermissionRepository = Depends(get_permission_repository),
    cache: PermissionCache = Depends(get_permission_cache),
) -> PermissionService:
    return PermissionService(repo, cache)


def get_audit_service(repo: AuditLogRepository = Depends(get_audit_repository)) -> AuditService:
    return AuditService(repo)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    tenants: TenantRepository = Depends(get_tenant_repository),
    refresh_tokens: RefreshTokenRepository = Depends(get_refresh_token_repository),
    audit: AuditService = Depends(get_audit_service),
) -> AuthService:
    return AuthService(users, tenants, refresh_tokens, audit)


def get_users_service(
    users: UserRepository = Depends(get_user_repository),
    permissions: PermissionService = Depends(get_permission_service),
    audit: AuditService = Depends(get_audit_service),
) -> UsersService:
    return UsersService(users, permissions, audit)


def current_user(request: Request) -> Authed:
    """Identity attached by the guard chain; absent only on public routes."""
    auth = getattr(request.state, "auth", None)
    if auth is None:
        raise Unauthorized("Authentication required")
    return auth
