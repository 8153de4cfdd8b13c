"""Pydantic schemas for API access requests.

Submit (user → platform), approve/reject bodies (admin → platform), and
the read/result shapes returned by both sides.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from raingate.db.models import AccessRequestStatus
from raingate.schemas.auth import CamelModel


# ─── Submit (user → platform) ───────────────────────────


class AccessRequestCreate(CamelModel):
    reason: Optional[str] = Field(None, description="Why the user needs API access")


# ─── Review (admin → platform) ──────────────────────────


class ApproveBody(CamelModel):
    admin_notes: Optional[str] = Field(None, max_length=1000)


class RejectBody(CamelModel):
    # Length is checked by the workflow so a short reason is a 400, not a schema error.
    reason: Optional[str] = Field(None, max_length=1000)


# ─── Read (platform → client) ───────────────────────────


class AccessRequestRead(CamelModel):
    id: str
    user_id: str
    user_email: Optional[str] = None
    reason: str
    status: AccessRequestStatus
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_by_email: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


class ApprovalRead(CamelModel):
    request_id: str
    user_id: str
    email: str
    api_key: str
    status: AccessRequestStatus


class RejectionRead(CamelModel):
    request_id: str
    status: AccessRequestStatus
    admin_notes: str
