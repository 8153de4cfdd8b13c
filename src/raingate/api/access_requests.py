"""Access request API — the user side of the workflow.

Routes:
- POST /access-requests → file a pending request
- GET /access-requests → the caller's own requests
"""

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from raingate.auth.dependencies import (
    get_current_identity,
    get_elevation_policy,
    get_token_service,
)
from raingate.auth.elevation import ElevationPolicy
from raingate.auth.gates import Identity
from raingate.auth.tokens import TokenService
from raingate.db.engine import get_db
from raingate.db.models import AccessRequest
from raingate.schemas.access_request import AccessRequestCreate, AccessRequestRead
from raingate.services.access_requests import AccessRequestWorkflow

logger = structlog.get_logger()

router = APIRouter()


def get_workflow(
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    elevation: ElevationPolicy = Depends(get_elevation_policy),
) -> AccessRequestWorkflow:
    return AccessRequestWorkflow(db=db, tokens=tokens, elevation=elevation)


def to_read(
    request: AccessRequest,
    user_email: str | None = None,
    reviewer_email: str | None = None,
) -> AccessRequestRead:
    return AccessRequestRead(
        id=str(request.id),
        user_id=str(request.user_id),
        user_email=user_email,
        reason=request.reason,
        status=request.status,
        admin_notes=request.admin_notes,
        reviewed_by=str(request.reviewed_by) if request.reviewed_by else None,
        reviewed_by_email=reviewer_email,
        reviewed_at=request.reviewed_at,
        created_at=request.created_at,
    )


@router.post("/access-requests", response_model=AccessRequestRead, status_code=201)
async def submit_access_request(
    body: AccessRequestCreate,
    identity: Identity = Depends(get_current_identity),
    wf: AccessRequestWorkflow = Depends(get_workflow),
):
    request = await wf.submit(identity.user_id, body.reason)
    logger.info(
        "access_request.submitted",
        request_id=str(request.id),
        user_id=identity.user_id,
    )
    return to_read(request, identity.email)


@router.get("/access-requests", response_model=list[AccessRequestRead])
async def list_my_access_requests(
    limit: int = Query(50, ge=1, le=200),
    identity: Identity = Depends(get_current_identity),
    wf: AccessRequestWorkflow = Depends(get_workflow),
):
    rows = await wf.list_requests(user_id=identity.user_id, limit=limit)
    return [to_read(*row) for row in rows]
