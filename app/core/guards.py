"""
Request guard chain and route permission table.

Follows Layer 2 rules:
- Every route declares its policy here: PUBLIC or a required permission
- A protected route without a declaration is denied (deny by default)
- Permission logic MUST live in this dedicated module, not scattered
- Never trust identity from the client; always from a verified access token

Guards run in the order of GUARD_CHAIN through one application-wide
dependency: `authenticate` resolves the caller, `authorize` checks the
route's required permission.
"""
from __future__ import annotations
from typing import Callable, Iterable, Iterator, Optional, Union
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.routing import APIRoute
from core.auth import Authed, decode_access_token, extract_bearer
from core.dependencies import get_permission_service, get_user_repository
from core.errors import Forbidden, Unauthorized
from core.logger import get_logger, log_security_event
from domain.models import Action, PermissionCheck, Scope
from repositories.user_repo import UserRepository
from services.permissions_service import PermissionService

logger = get_logger(__name__)


class Public:
    """Marker policy: no authentication, no permission check."""

    def __repr__(self) -> str:
        return "PUBLIC"


PUBLIC = Public()

RequiredPermission = PermissionCheck
RoutePolicy = Union[Public, RequiredPermission]


def _perm(table_name: str, action: Action, scope: Optional[Scope] = None) -> RequiredPermission:
    return RequiredPermission(table_name=table_name, action=action, scope=scope)


# Keyed by route name ("<module>.<handler>").
ROUTE_PERMISSIONS: dict[str, RoutePolicy] = {
    "health": PUBLIC,
    # auth
    "auth.register": PUBLIC,
    "auth.login": PUBLIC,
    "auth.refresh": PUBLIC,
    "auth.profile": _perm("users", Action.READ, Scope.OWN),
    "auth.logout": _perm("users", Action.READ, Scope.OWN),
    # permissions
    "permissions.me": _perm("users", Action.READ, Scope.OWN),
    "permissions.grant": _perm("user_permissions", Action.UPDATE, Scope.ALL),
    "permissions.revoke": _perm("user_permissions", Action.DELETE, Scope.ALL),
    # users
    "users.me": _perm("users", Action.READ, Scope.OWN),
    "users.update_me": _perm("users", Action.UPDATE, Scope.OWN),
    "users.all": _perm("users", Action.READ),
    "users.admin": _perm("users", Action.DELETE, Scope.ALL),
    "users.by_username": _perm("users", Action.READ, Scope.ALL),
    "users.by_tenant": _perm("users", Action.READ, Scope.ALL),
    "users.update": _perm("users", Action.UPDATE),
    "users.delete": _perm("users", Action.DELETE, Scope.ALL),
    # audit log
    "audit_log.by_tenant": _perm("audit_logs", Action.READ, Scope.ALL),
    "audit_log.by_user": _perm("audit_logs", Action.READ, Scope.ALL),
}


class GuardContext:
    """What a guard may look at: the request, the route policy and its collaborators."""

    def __init__(
        self,
        request: Request,
        policy: Optional[RoutePolicy],
        users: UserRepository,
        permissions: PermissionService,
    ) -> None:
        self.request = request
        self.policy = policy
        self.users = users
        self.permissions = permissions

    @property
    def is_public(self) -> bool:
        return isinstance(self.policy, Public)

    @property
    def auth(self) -> Optional[Authed]:
        return getattr(self.request.state, "auth", None)


def iter_api_routes(routes: Iterable) -> Iterator[APIRoute]:
    """Yield every APIRoute, descending into wrappers that carry their own `routes`."""
    for r in routes:
        if isinstance(r, APIRoute):
            yield r
        else:
            yield from iter_api_routes(getattr(r, "routes", None) or ())


def route_name(request: Request) -> Optional[str]:
    route = request.scope.get("route")
    if route is not None:
        return route.name
    endpoint = request.scope.get("endpoint")
    for r in iter_api_routes(request.app.routes):
        if r.endpoint is endpoint:
            return r.name
    return None


def authenticate(ctx: GuardContext) -> None:
    """
    Resolve the caller from `Authorization: Bearer <access token>`.

    Raises:
        Unauthorized: token missing, invalid or expired, or user missing/inactive
    """
    ctx.request.state.auth = None
    if ctx.is_public:
        return

    payload = decode_access_token(extract_bearer(ctx.request))
    user = ctx.users.find_by_id(payload["sub"])
    if user is None or not user.is_active:
        log_security_event(
            action="authenticate",
            result="failure",
            user_id=payload["sub"],
            meta={"reason": "user_unavailable"},
            level="warning",
        )
        raise Unauthorized("User not found or inactive")

    ctx.request.state.auth = Authed(
        user_id=user.id,
        tenant_id=user.tenant_id,
        role_id=user.role_id,
        username=user.username,
    )


def authorize(ctx: GuardContext) -> None:
    """
    Enforce the route's declared permission.

    Raises:
        Forbidden: no declaration, no identity, or permission denied
    """
    if ctx.is_public:
        return
    if ctx.policy is None:
        logger.warning("Denied undeclared route %s", route_name(ctx.request))
        raise Forbidden("Route requires permissions")

    auth = ctx.auth
    if auth is None:
        raise Forbidden("User not authenticated")

    check = ctx.policy
    if not ctx.permissions.can_perform(auth.user_id, check):
        log_security_event(
            action="authorize",
            result="denied",
            user_id=auth.user_id,
            tenant_id=auth.tenant_id,
            meta={
                "route": route_name(ctx.request),
                "table": check.table_name,
                "required_action": check.action.value,
                "required_scope": check.scope.value if check.scope else None,
            },
            level="warning",
        )
        raise Forbidden(f"You do not have permission to {check.action.value} on {check.table_name}")


GUARD_CHAIN: tuple[Callable[[GuardContext], None], ...] = (authenticate, authorize)


def guard_chain(
    request: Request,
    users: UserRepository = Depends(get_user_repository),
    permissions: PermissionService = Depends(get_permission_service),
) -> None:
    """Application-wide dependency running every guard in order."""
    ctx = GuardContext(request, ROUTE_PERMISSIONS.get(route_name(request) or ""), users, permissions)
    for guard in GUARD_CHAIN:
        guard(ctx)


def check_route_policies(app: FastAPI, *routers: APIRouter) -> None:
    """
    Cross-check ROUTE_PERMISSIONS against the routes of `app` and `routers`.

    Routers are read directly because included routers may be wrapped
    in the app's route list instead of being flattened into it.

    Raises:
        RuntimeError: a declaration names a route that does not exist
    """
    mounted = {r.name for r in iter_api_routes(app.routes)}
    for router in routers:
        mounted.update(r.name for r in iter_api_routes(router.routes))
    stale = sorted(set(ROUTE_PERMISSIONS) - mounted)
    if stale:
        raise RuntimeError(f"Permission declarations for unknown routes: {', '.join(stale)}")
    for name in sorted(mounted - set(ROUTE_PERMISSIONS)):
        logger.warning("Route %s has no permission declaration and will be denied", name)
