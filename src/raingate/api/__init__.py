"""API route aggregation.

All routers registered here get mounted in main.py.

Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and auth routers are open (the auth
router guards its own protected routes per handler); the access request
router needs an identity and the admin router needs an admin identity.
"""

from fastapi import APIRouter, Depends

from raingate.api.access_requests import router as access_requests_router
from raingate.api.admin import router as admin_router
from raingate.api.auth import router as auth_router
from raingate.api.health import router as health_router
from raingate.auth.dependencies import get_current_identity, require_admin

_auth = [Depends(get_current_identity)]
_admin = [Depends(require_admin)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes
api_router.include_router(access_requests_router, tags=["access-requests"], dependencies=_auth)
api_router.include_router(admin_router, tags=["admin"], dependencies=_admin)
