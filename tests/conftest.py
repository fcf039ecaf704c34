"""
Pytest configuration and fixtures.

Settings are read at import time, so the environment is prepared before any
application module is imported.
"""
import os

os.environ.update({
    "PG_HOST": "localhost",
    "PG_DB": "vivero_test",
    "PG_USER": "vivero",
    "PG_PASSWORD": "vivero",
    "JWT_ACCESS_SECRET": "test-access-secret-0123456789",
    "JWT_REFRESH_SECRET": "test-refresh-secret-9876543210",
    "BCRYPT_ROUNDS": "4",
    "PERMISSION_CACHE_BACKEND": "memory",
    "LOG_LEVEL": "WARNING",
})

import pytest
from fastapi.testclient import TestClient

from core.cache import MemoryPermissionCache
from core.dependencies import (
    get_audit_repository,
    get_permission_cache,
    get_permission_repository,
    get_refresh_token_repository,
    get_tenant_repository,
    get_user_repository,
)
from domain.models import Role, Tenant
from services.audit_service import AuditService
from services.auth_service import AuthService
from services.permissions_service import PermissionService
from main import app

from fakes import (
    FakeAuditLogRepository,
    FakeDB,
    FakePermissionRepository,
    FakeRefreshTokenRepository,
    FakeTenantRepository,
    FakeUserRepository,
)


@pytest.fixture
def db() -> FakeDB:
    db = FakeDB()
    db.tenants["tenant-1"] = Tenant(id="tenant-1", name="Vivero Norte")
    db.tenants["tenant-off"] = Tenant(id="tenant-off", name="Closed", is_active=False)
    db.roles["role-1"] = Role(id="role-1", name="staff")
    return db


@pytest.fixture
def permission_repo(db) -> FakePermissionRepository:
    return FakePermissionRepository(db)


@pytest.fixture
def permission_cache() -> MemoryPermissionCache:
    return MemoryPermissionCache(ttl=60)


@pytest.fixture
def permission_service(permission_repo, permission_cache) -> PermissionService:
    return PermissionService(permission_repo, permission_cache)


@pytest.fixture
def auth_service(db) -> AuthService:
    return AuthService(
        FakeUserRepository(db),
        FakeTenantRepository(db),
        FakeRefreshTokenRepository(db),
        AuditService(FakeAuditLogRepository(db)),
    )


@pytest.fixture
def client(db, permission_repo, permission_cache):
    """TestClient whose repositories all point at the in-memory FakeDB."""
    app.dependency_overrides.update({
        get_user_repository: lambda: FakeUserRepository(db),
        get_tenant_repository: lambda: FakeTenantRepository(db),
        get_permission_repository: lambda: permission_repo,
        get_refresh_token_repository: lambda: FakeRefreshTokenRepository(db),
        get_audit_repository: lambda: FakeAuditLogRepository(db),
        get_permission_cache: lambda: permission_cache,
    })
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
