"""
Authentication endpoints.

Follows Layer 1 and Layer 3 rules:
- Validate input with Pydantic schemas
- Return minimal information on failure
- ALWAYS use Pydantic models for request/response
"""
from __future__ import annotations
from fastapi import APIRouter, Depends, Request, status
from core.auth import Authed
from core.dependencies import current_user, get_auth_service
from schemas.auth import AuthOut, LoginIn, LogoutIn, LogoutOut, RefreshIn, RegisterIn, TokensOut
from schemas.users import UserOut
from services.auth_service import AuthResult, AuthService, ClientInfo

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _client(req: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=req.client.host if req.client else None,
        user_agent=req.headers.get("user-agent"),
    )


def _auth_out(result: AuthResult) -> AuthOut:
    return AuthOut(
        user=UserOut.model_validate(result.user),
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        token_type=result.tokens.token_type,
        expires_in=result.tokens.expires_in,
    )


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED, name="auth.register")
def register(body: RegisterIn, req: Request, svc: AuthService = Depends(get_auth_service)) -> AuthOut:
    """
    Create an account in an active tenant and sign it in.

    The new user can read its own record only until an admin grants more.
    """
    result = svc.register(
        username=body.username,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        tenant_id=body.tenant_id,
        role_id=body.role_id,
        client=_client(req),
    )
    return _auth_out(result)


@router.post("/login", response_model=AuthOut, name="auth.login")
def login(body: LoginIn, req: Request, svc: AuthService = Depends(get_auth_service)) -> AuthOut:
    """
    Authenticate user and issue an access + refresh token pair.

    Follows Layer 1 rules:
    - Return minimal information on failure (no "user not found vs wrong password" distinction)
    """
    return _auth_out(svc.login(body.identity, body.password, client=_client(req)))


@router.post("/refresh", response_model=TokensOut, name="auth.refresh")
def refresh(body: RefreshIn, svc: AuthService = Depends(get_auth_service)) -> TokensOut:
    tokens = svc.refresh(body.refresh_token)
    return TokensOut(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
    )


@router.get("/profile", response_model=UserOut, name="auth.profile")
def profile(
    auth: Authed = Depends(current_user),
    svc: AuthService = Depends(get_auth_service),
) -> UserOut:
    return UserOut.model_validate(svc.get_profile(auth.user_id))


@router.post("/logout", response_model=LogoutOut, name="auth.logout")
def logout(
    req: Request,
    body: LogoutIn | None = None,
    auth: Authed = Depends(current_user),
    svc: AuthService = Depends(get_auth_service),
) -> LogoutOut:
    svc.logout(auth, body.refresh_token if body else None, client=_client(req))
    return LogoutOut(ok=True, message="Logged out")
