"""Security audit events.

Authentication and authorization failures are emitted as structured log
events at warning level. Where they end up (files, a SIEM, retention) is a
deployment concern. Events never contain a raw credential; at most the
opaque ``credential_ref`` from tokens.credential_ref().
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from starlette.requests import HTTPConnection

logger = structlog.get_logger()

# ─── Event types ────────────────────────────────────────

MISSING_CREDENTIAL = "security.missing_credential"
INVALID_CREDENTIAL = "security.invalid_credential"
INSUFFICIENT_PRIVILEGE = "security.insufficient_privilege"


@dataclass(frozen=True)
class RequestMetadata:
    """What an audit event may say about the request that triggered it."""

    ip: Optional[str]
    user_agent: Optional[str]
    path: str

    @classmethod
    def from_connection(cls, conn: HTTPConnection) -> "RequestMetadata":
        return cls(
            ip=conn.client.host if conn.client else None,
            user_agent=conn.headers.get("user-agent"),
            path=conn.url.path,
        )


def emit_security_event(
    event_type: str, metadata: RequestMetadata, **details: Any
) -> None:
    logger.warning(
        event_type,
        audit=True,
        ip=metadata.ip,
        user_agent=metadata.user_agent,
        path=metadata.path,
        **details,
    )
