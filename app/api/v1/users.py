"""
User endpoints.

Route-level requirements are declared in core.guards.ROUTE_PERMISSIONS;
row-level checks (OWN vs ALL on another user's record) live in UsersService.
"""
from __future__ import annotations
from fastapi import APIRouter, Depends
from core.auth import Authed
from core.dependencies import current_user, get_users_service
from schemas.users import OkOut, UserAdminOut, UserOut, UserUpdateIn
from services.users_service import UsersService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserOut, name="users.me")
def get_me(
    auth: Authed = Depends(current_user),
    svc: UsersService = Depends(get_users_service),
) -> UserOut:
    return UserOut.model_validate(svc.get_by_id(auth.user_id))


@router.patch("/me", response_model=UserOut, name="users.update_me")
def update_me(
    body: UserUpdateIn,
    auth: Authed = Depends(current_user),
    svc: UsersService = Depends(get_users_service),
) -> UserOut:
    return UserOut.model_validate(svc.update_me(auth, body.model_dump(exclude_none=True)))


@router.get("/all", response_model=list[UserOut], name="users.all")
def list_users(
    auth: Authed = Depends(current_user),
    svc: UsersService = Depends(get_users_service),
) -> list[UserOut]:
    """All active users for callers with read:ALL, otherwise only the caller."""
    return [UserOut.model_validate(u) for u in svc.list_visible(auth)]


@router.get("/admin", response_model=list[UserAdminOut], name="users.admin")
def list_users_admin(svc: UsersService = Depends(get_users_service)) -> list[UserAdminOut]:
    return [UserAdminOut.model_validate(u) for u in svc.list_all_admin()]


@router.get("/username/{username}", response_model=UserOut, name="users.by_username")
def get_by_username(username: str, svc: UsersService = Depends(get_users_service)) -> UserOut:
    return UserOut.model_validate(svc.get_by_username(username))


@router.get("/tenant/{tenant_id}", response_model=list[UserOut], name="users.by_tenant")
def list_by_tenant(tenant_id: str, svc: UsersService = Depends(get_users_service)) -> list[UserOut]:
    return [UserOut.model_validate(u) for u in svc.list_by_tenant(tenant_id)]


@router.patch("/{username}", response_model=UserOut, name="users.update")
def update_user(
    username: str,
    body: UserUpdateIn,
    auth: Authed = Depends(current_user),
    svc: UsersService = Depends(get_users_service),
) -> UserOut:
    return UserOut.model_validate(svc.update_by_username(auth, username, body.model_dump(exclude_none=True)))


@router.delete("/{username}", response_model=OkOut, name="users.delete")
def delete_user(
    username: str,
    auth: Authed = Depends(current_user),
    svc: UsersService = Depends(get_users_service),
) -> OkOut:
    """Soft delete: the user is deactivated and stamped, not removed."""
    svc.soft_delete(auth, username)
    return OkOut()
