"""Auth API — registration, login, logout, identity, self-service credential.

Routes:
- POST /auth/register → create an account, returns its first credential
- POST /auth/login → email/password → credential (body + jwt cookie)
- POST /auth/logout → clear the jwt cookie
- GET /auth/me → the identity behind the presented credential
- POST /auth/request-access → mint a fresh credential for the caller
"""

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from raingate.auth.cookies import clear_credential_cookie, set_credential_cookie
from raingate.auth.dependencies import (
    get_current_identity,
    get_elevation_policy,
    get_token_service,
)
from raingate.auth.elevation import ElevationPolicy
from raingate.auth.gates import Identity
from raingate.auth.tokens import TokenService
from raingate.config import settings
from raingate.db.engine import get_db
from raingate.schemas.auth import (
    ApiKeyResponse,
    Credentials,
    IdentityRead,
    LoginResponse,
    RegisterResponse,
)
from raingate.services.users import UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


def _get_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    elevation: ElevationPolicy = Depends(get_elevation_policy),
) -> UserService:
    return UserService(db=db, tokens=tokens, elevation=elevation)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(body: Credentials, svc: UserService = Depends(_get_service)):
    """Create a new account. Admin status comes from the elevation policy."""
    grant = await svc.register(body.email, body.password)
    logger.info(
        "auth.registered",
        user_id=str(grant.user.id),
        is_admin=grant.user.is_admin,
    )
    return RegisterResponse(api_key=grant.credential)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(
    body: Credentials,
    response: Response,
    svc: UserService = Depends(_get_service),
):
    """Login with email and password → credential, also set as a cookie."""
    grant = await svc.login(body.email, body.password)
    set_credential_cookie(response, grant.credential, settings)
    logger.info(
        "auth.login",
        user_id=str(grant.user.id),
        is_admin=grant.user.is_admin,
    )
    return LoginResponse(
        email=grant.user.email,
        token=grant.credential,
        is_admin=grant.user.is_admin,
        created_at=grant.user.created_at,
    )


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout")
async def logout(response: Response):
    clear_credential_cookie(response, settings)
    return {"success": True, "message": "Logged out successfully"}


# ─── Current identity ───────────────────────────────────


@router.get("/me", response_model=IdentityRead)
async def get_me(identity: Identity = Depends(get_current_identity)):
    return IdentityRead(
        email=identity.email,
        user_id=identity.user_id,
        is_admin=identity.is_admin,
        expires_at=identity.expires_at,
    )


# ─── Self-service credential ────────────────────────────


@router.post("/request-access", response_model=ApiKeyResponse)
async def request_access(
    identity: Identity = Depends(get_current_identity),
    svc: UserService = Depends(_get_service),
):
    """Mint and store a fresh credential for the authenticated caller."""
    grant = await svc.reissue_credential(identity.user_id)
    logger.info("auth.credential_reissued", user_id=identity.user_id)
    return ApiKeyResponse(api_key=grant.credential)
