"""API access request workflow — users ask, admins decide.

Lifecycle:
1. A user submits a request with a reason → status pending
2. An admin approves → a fresh credential is minted for the user and
   written as their current credential; the request becomes approved
3. Or an admin rejects with a reason → rejected, no credential touched

approved and rejected are terminal. The allowed moves live in
``transition()``. Leaving pending is persisted with a conditional UPDATE
(``WHERE status = 'pending'``), so of two reviewers racing on the same
request exactly one write lands. The loser gets InvalidStateError and its
transaction, including any credential write, is rolled back.

Callers are expected to have passed AdminGate before approve/reject.
This service does not emit audit events.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from raingate.auth.elevation import ElevationPolicy
from raingate.auth.gates import Identity
from raingate.auth.tokens import TokenClaims, TokenService
from raingate.db.models import AccessRequest, AccessRequestStatus, User
from raingate.errors import (
    DuplicateResourceError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)

DEFAULT_APPROVAL_NOTE = "Request approved by administrator"
MIN_REJECTION_REASON = 5
MIN_REQUEST_REASON = 5
MAX_REQUEST_REASON = 1000


class ReviewAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


_TRANSITIONS: dict[tuple[AccessRequestStatus, ReviewAction], AccessRequestStatus] = {
    (AccessRequestStatus.PENDING, ReviewAction.APPROVE): AccessRequestStatus.APPROVED,
    (AccessRequestStatus.PENDING, ReviewAction.REJECT): AccessRequestStatus.REJECTED,
}


def transition(
    status: AccessRequestStatus, action: ReviewAction
) -> AccessRequestStatus:
    """Next status for ``action`` taken in ``status``, or InvalidStateError."""
    try:
        return _TRANSITIONS[(status, action)]
    except KeyError:
        raise InvalidStateError(
            f"Cannot {action.value} a request that is {status.value}"
        ) from None


@dataclass
class ApprovalResult:
    request: AccessRequest
    user: User
    credential: str


def _parse_id(value: str | uuid.UUID, what: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"{what} not found") from None


class AccessRequestWorkflow:
    """Manages the access request lifecycle."""

    def __init__(
        self,
        db: AsyncSession,
        tokens: TokenService,
        elevation: ElevationPolicy,
    ):
        self.db = db
        self.tokens = tokens
        self.elevation = elevation

    # ─── Submit (user) ────────────────────────────────────

    async def submit(self, user_id: str | uuid.UUID, reason: Optional[str]) -> AccessRequest:
        """File a new pending request for ``user_id``.

        One pending request per user at a time.
        """
        reason = (reason or "").strip()
        if not MIN_REQUEST_REASON <= len(reason) <= MAX_REQUEST_REASON:
            raise InvalidInputError(
                f"Reason must be {MIN_REQUEST_REASON}-{MAX_REQUEST_REASON} characters"
            )

        user = await self.db.get(User, _parse_id(user_id, "User"))
        if not user:
            raise NotFoundError("User not found")

        q = select(AccessRequest.id).where(
            AccessRequest.user_id == user.id,
            AccessRequest.status == AccessRequestStatus.PENDING,
        )
        if (await self.db.execute(q)).first():
            raise DuplicateResourceError("You already have a pending access request")

        request = AccessRequest(
            user_id=user.id,
            reason=reason,
            status=AccessRequestStatus.PENDING,
        )
        self.db.add(request)
        await self.db.commit()
        return request

    # ─── Approve (admin) ──────────────────────────────────

    async def approve(
        self,
        request_id: str | uuid.UUID,
        reviewer: Identity,
        notes: Optional[str] = None,
    ) -> ApprovalResult:
        request = await self._load(request_id)
        new_status = transition(request.status, ReviewAction.APPROVE)

        user = await self.db.get(User, request.user_id)
        if not user:
            # Dangling reference — the user was deleted after filing.
            raise NotFoundError("User not found")

        credential = self.tokens.issue(
            TokenClaims(
                email=user.email,
                user_id=str(user.id),
                is_admin=self.elevation(user.email),
            )
        )

        await self._claim(
            request.id,
            new_status,
            admin_notes=(notes or "").strip() or DEFAULT_APPROVAL_NOTE,
            reviewer=reviewer,
        )
        user.current_credential = credential
        await self.db.commit()
        await self.db.refresh(request)

        return ApprovalResult(request=request, user=user, credential=credential)

    # ─── Reject (admin) ───────────────────────────────────

    async def reject(
        self,
        request_id: str | uuid.UUID,
        reviewer: Identity,
        reason: Optional[str],
    ) -> AccessRequest:
        reason = (reason or "").strip()
        if len(reason) < MIN_REJECTION_REASON:
            raise InvalidInputError(
                f"Rejection reason is required (minimum {MIN_REJECTION_REASON} characters)"
            )

        request = await self._load(request_id)
        new_status = transition(request.status, ReviewAction.REJECT)

        await self._claim(request.id, new_status, admin_notes=reason, reviewer=reviewer)
        await self.db.commit()
        await self.db.refresh(request)
        return request

    # ─── Queries ──────────────────────────────────────────

    async def get_request(self, request_id: str | uuid.UUID) -> Optional[AccessRequest]:
        try:
            return await self.db.get(AccessRequest, _parse_id(request_id, "Request"))
        except NotFoundError:
            return None

    async def list_requests(
        self,
        *,
        status: Optional[AccessRequestStatus] = None,
        user_id: Optional[str | uuid.UUID] = None,
        limit: int = 100,
    ) -> list[tuple[AccessRequest, Optional[str], Optional[str]]]:
        """Requests newest first, as ``(request, requester_email, reviewer_email)``.

        Either email is None when that user no longer exists or, for the
        reviewer, when nobody has decided yet.
        """
        reviewer = aliased(User)
        q = (
            select(AccessRequest, User.email, reviewer.email)
            .outerjoin(User, User.id == AccessRequest.user_id)
            .outerjoin(reviewer, reviewer.id == AccessRequest.reviewed_by)
            .order_by(AccessRequest.created_at.desc())
            .limit(limit)
        )
        if status:
            q = q.where(AccessRequest.status == status)
        if user_id:
            q = q.where(AccessRequest.user_id == _parse_id(user_id, "User"))

        result = await self.db.execute(q)
        return [(row[0], row[1], row[2]) for row in result.all()]

    # ─── Internals ────────────────────────────────────────

    async def _load(self, request_id: str | uuid.UUID) -> AccessRequest:
        request = await self.db.get(AccessRequest, _parse_id(request_id, "Request"))
        if not request:
            raise NotFoundError("Request not found")
        return request

    async def _claim(
        self,
        request_id: uuid.UUID,
        new_status: AccessRequestStatus,
        *,
        admin_notes: str,
        reviewer: Identity,
    ) -> None:
        """Compare-and-swap pending → ``new_status``; InvalidStateError if someone got there first."""
        result = await self.db.execute(
            update(AccessRequest)
            .where(
                AccessRequest.id == request_id,
                AccessRequest.status == AccessRequestStatus.PENDING,
            )
            .values(
                status=new_status,
                admin_notes=admin_notes,
                reviewed_by=_parse_id(reviewer.user_id, "Reviewer"),
                reviewed_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise InvalidStateError("Request is not pending")
