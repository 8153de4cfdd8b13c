"""FastAPI auth dependencies.

These are used as Depends() in route handlers to resolve the current
identity and to gate admin routes. Collaborators (token service,
elevation rule, extractor) are built once from settings and can be
swapped in tests through app.dependency_overrides.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Request

from raingate.auth.credentials import CredentialExtractor, default_channels
from raingate.auth.elevation import ElevationPolicy, SingleAdminEmailRule
from raingate.auth.gates import AdminGate, AuthGate, Identity
from raingate.auth.tokens import TokenService
from raingate.config import settings


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        default_ttl=timedelta(days=settings.token_ttl_days),
    )


@lru_cache
def get_elevation_policy() -> ElevationPolicy:
    return SingleAdminEmailRule(settings.admin_email)


@lru_cache
def get_credential_extractor() -> CredentialExtractor:
    return CredentialExtractor(
        default_channels(
            cookie_name=settings.credential_cookie_name,
            legacy_header=settings.legacy_credential_header,
        )
    )


def get_auth_gate(
    extractor: CredentialExtractor = Depends(get_credential_extractor),
    tokens: TokenService = Depends(get_token_service),
) -> AuthGate:
    return AuthGate(extractor=extractor, tokens=tokens)


async def get_current_identity(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> Identity:
    """The "hard" auth dependency: 401 without a token, 403 with a bad one."""
    return gate.authenticate(request)


async def require_admin(
    request: Request,
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """Authenticated *and* admin, else 403 with an audit event."""
    return AdminGate().authorize(identity, request)
