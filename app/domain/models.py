from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class Scope(str, Enum):
    """Breadth of rows a permission covers."""
    NONE = "NONE"
    OWN = "OWN"
    ALL = "ALL"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class Tenant(BaseModel):
    id: str
    name: str
    is_active: bool = True


class Role(BaseModel):
    id: str
    name: str


class User(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tenant_id: str
    role_id: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None


class PermissionEntry(BaseModel):
    """CRUD flags and scope a user holds on one table."""
    can_create: bool = False
    can_read: bool = False
    can_update: bool = False
    can_delete: bool = False
    scope: Scope = Scope.NONE

    def allows(self, action: Action) -> bool:
        match action:
            case Action.CREATE:
                return self.can_create
            case Action.READ:
                return self.can_read
            case Action.UPDATE:
                return self.can_update
            case Action.DELETE:
                return self.can_delete


class UserPermission(PermissionEntry):
    user_id: str
    table_name: str


PermissionMap = dict[str, PermissionEntry]


class PermissionCheck(BaseModel):
    """Requirement a route or caller places on a table."""
    table_name: str
    action: Action
    scope: Optional[Scope] = None


class RefreshTokenRecord(BaseModel):
    jti: str
    user_id: str
    expires_at: datetime
    revoked_at: Optional[datetime] = None
    replaced_by: Optional[str] = None

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    ACCESS = "ACCESS"


class EntityType(str, Enum):
    USER = "USER"
    TENANT = "TENANT"
    ROLE = "ROLE"
    AUDIT_LOG = "AUDIT_LOG"
    LOCALE = "LOCALE"
    MESSAGE = "MESSAGE"
    USER_PREFERENCE = "USER_PREFERENCE"
    USER_PERMISSION = "USER_PERMISSION"


class AuditEntry(BaseModel):
    id: Optional[str] = None
    tenant_id: str
    user_id: str
    action: AuditAction
    entity_type: EntityType
    entity_id: str
    changes: dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: Optional[datetime] = None
