"""Admin API — review access requests, manage users.

Every route here sits behind require_admin (mounted in api/__init__.py).

Routes:
- GET /admin/requests → all requests, newest first, optional status filter
- POST /admin/requests/:id/approve → mint + store a credential for the requester
- POST /admin/requests/:id/reject → close the request with a reason
- POST /admin/users → create a user; admin status comes from the elevation rule
- GET /admin/users → all users (no credentials)
- DELETE /admin/users/:id → remove a user
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from raingate.api.access_requests import get_workflow, to_read
from raingate.auth.dependencies import (
    get_elevation_policy,
    get_token_service,
    require_admin,
)
from raingate.auth.elevation import ElevationPolicy
from raingate.auth.gates import Identity
from raingate.auth.tokens import TokenService
from raingate.db.engine import get_db
from raingate.db.models import AccessRequestStatus
from raingate.schemas.access_request import (
    AccessRequestRead,
    ApprovalRead,
    ApproveBody,
    RejectBody,
    RejectionRead,
)
from raingate.schemas.auth import Credentials, UserCreated, UserRead
from raingate.services.access_requests import AccessRequestWorkflow
from raingate.services.users import UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/admin")


def _get_user_service(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    elevation: ElevationPolicy = Depends(get_elevation_policy),
) -> UserService:
    return UserService(db=db, tokens=tokens, elevation=elevation)


# ─── Access requests ─────────────────────────────────────


@router.get("/requests", response_model=list[AccessRequestRead])
async def list_access_requests(
    status: Optional[AccessRequestStatus] = Query(
        None, description="Filter by status: pending, approved, rejected"
    ),
    limit: int = Query(100, ge=1, le=500),
    wf: AccessRequestWorkflow = Depends(get_workflow),
):
    rows = await wf.list_requests(status=status, limit=limit)
    return [to_read(*row) for row in rows]


@router.post("/requests/{request_id}/approve", response_model=ApprovalRead)
async def approve_access_request(
    request_id: str,
    body: Optional[ApproveBody] = None,
    reviewer: Identity = Depends(require_admin),
    wf: AccessRequestWorkflow = Depends(get_workflow),
):
    """Approve a pending request. The new credential is returned to the admin;
    nothing is pushed to the user."""
    result = await wf.approve(
        request_id,
        reviewer,
        notes=body.admin_notes if body else None,
    )
    logger.info(
        "access_request.approved",
        request_id=request_id,
        user_id=str(result.user.id),
        reviewed_by=reviewer.user_id,
    )
    return ApprovalRead(
        request_id=str(result.request.id),
        user_id=str(result.user.id),
        email=result.user.email,
        api_key=result.credential,
        status=result.request.status,
    )


@router.post("/requests/{request_id}/reject", response_model=RejectionRead)
async def reject_access_request(
    request_id: str,
    body: Optional[RejectBody] = None,
    reviewer: Identity = Depends(require_admin),
    wf: AccessRequestWorkflow = Depends(get_workflow),
):
    request = await wf.reject(request_id, reviewer, body.reason if body else None)
    logger.info(
        "access_request.rejected",
        request_id=request_id,
        reviewed_by=reviewer.user_id,
    )
    return RejectionRead(
        request_id=str(request.id),
        status=request.status,
        admin_notes=request.admin_notes,
    )


# ─── Users ───────────────────────────────────────────────


@router.get("/users", response_model=list[UserRead])
async def list_users(svc: UserService = Depends(_get_user_service)):
    users = await svc.list_users()
    return [
        UserRead(
            id=str(u.id),
            email=u.email,
            is_admin=u.is_admin,
            created_at=u.created_at,
            last_used_at=u.last_used_at,
        )
        for u in users
    ]


@router.post("/users", response_model=UserCreated, status_code=201)
async def create_user(
    body: Credentials,
    reviewer: Identity = Depends(require_admin),
    svc: UserService = Depends(_get_user_service),
):
    """Create an account on someone's behalf. There is no isAdmin input:
    the elevation rule decides, as it does for self-registration."""
    grant = await svc.register(body.email, body.password)
    logger.info(
        "admin.user_created",
        user_id=str(grant.user.id),
        created_by=reviewer.user_id,
    )
    return UserCreated(
        id=str(grant.user.id),
        email=grant.user.email,
        api_key=grant.credential,
        is_admin=grant.user.is_admin,
        created_at=grant.user.created_at,
    )


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    reviewer: Identity = Depends(require_admin),
    svc: UserService = Depends(_get_user_service),
):
    await svc.delete_user(user_id)
    logger.info("admin.user_deleted", user_id=user_id, deleted_by=reviewer.user_id)
    return {"deleted": True}
