"""
Permission endpoints: read the caller's matrix, grant and revoke per table.

Route-level requirements are declared in core.guards.ROUTE_PERMISSIONS.
"""
from __future__ import annotations
from fastapi import APIRouter, Depends
from core.auth import Authed
from core.dependencies import current_user, get_audit_service, get_permission_service, get_user_repository
from core.errors import NotFound
from domain.models import AuditAction, EntityType
from repositories.user_repo import UserRepository
from schemas.permissions import PermissionGrantIn, PermissionOut
from schemas.users import OkOut
from services.audit_service import AuditService
from services.permissions_service import PermissionService

router = APIRouter(prefix="/api/v1/permissions", tags=["permissions"])


def _tenant_user(users: UserRepository, user_id: str, auth: Authed) -> None:
    """Target must exist in the caller's tenant; other tenants read as missing."""
    user = users.find_by_id(user_id)
    if user is None or user.tenant_id != auth.tenant_id:
        raise NotFound("User not found")


@router.get("/me", response_model=dict[str, PermissionOut], name="permissions.me")
def my_permissions(
    auth: Authed = Depends(current_user),
    svc: PermissionService = Depends(get_permission_service),
) -> dict[str, PermissionOut]:
    """Caller's permission map keyed by table name."""
    return {
        table: PermissionOut.model_validate(entry)
        for table, entry in svc.get_user_permissions(auth.user_id).items()
    }


@router.put("/{user_id}/{table_name}", response_model=OkOut, name="permissions.grant")
def grant(
    user_id: str,
    table_name: str,
    body: PermissionGrantIn,
    auth: Authed = Depends(current_user),
    svc: PermissionService = Depends(get_permission_service),
    audit: AuditService = Depends(get_audit_service),
    users: UserRepository = Depends(get_user_repository),
) -> OkOut:
    _tenant_user(users, user_id, auth)
    changes = body.model_dump(mode="json", exclude_none=True)
    svc.grant_permission(user_id, table_name, body.model_dump(exclude_none=True), granted_by=auth.user_id)
    audit.record(
        tenant_id=auth.tenant_id,
        user_id=auth.user_id,
        action=AuditAction.UPDATE,
        entity_type=EntityType.USER_PERMISSION,
        entity_id=user_id,
        changes={"table_name": table_name, **changes},
    )
    return OkOut()


@router.delete("/{user_id}/{table_name}", response_model=OkOut, name="permissions.revoke")
def revoke(
    user_id: str,
    table_name: str,
    auth: Authed = Depends(current_user),
    svc: PermissionService = Depends(get_permission_service),
    audit: AuditService = Depends(get_audit_service),
    users: UserRepository = Depends(get_user_repository),
) -> OkOut:
    _tenant_user(users, user_id, auth)
    if not svc.revoke_table_permissions(user_id, table_name, revoked_by=auth.user_id):
        raise NotFound("Permission not found")
    audit.record(
        tenant_id=auth.tenant_id,
        user_id=auth.user_id,
        action=AuditAction.DELETE,
        entity_type=EntityType.USER_PERMISSION,
        entity_id=user_id,
        changes={"table_name": table_name},
    )
    return OkOut()
