"""Authentication and admin gates.

AuthGate turns a raw request into an Identity or a failure:
- no token on any channel     → MissingCredentialError (401)
- token present but rejected  → InvalidCredentialError (403)

AdminGate refines an Identity into an authorization decision:
- no identity                 → UnauthenticatedError (401)
- identity without admin flag → InsufficientPrivilegeError (403)

Every failure emits an audit event before raising. Authentication
failures log only request metadata. Authorization failures happen on a
known principal, so they also log its email and user id.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from starlette.requests import HTTPConnection

from raingate.auth import audit
from raingate.auth.credentials import CredentialExtractor
from raingate.auth.tokens import TokenRejected, TokenService, credential_ref
from raingate.errors import (
    InsufficientPrivilegeError,
    InvalidCredentialError,
    MissingCredentialError,
    UnauthenticatedError,
)

AuditSink = Callable[..., None]


@dataclass(frozen=True)
class Identity:
    """The authenticated principal for the duration of one request."""

    email: str
    user_id: str
    is_admin: bool
    expires_at: datetime


class AuthGate:
    def __init__(
        self,
        extractor: CredentialExtractor,
        tokens: TokenService,
        emit: AuditSink = audit.emit_security_event,
    ):
        self.extractor = extractor
        self.tokens = tokens
        self.emit = emit

    def authenticate(self, conn: HTTPConnection) -> Identity:
        credential = self.extractor.extract(conn)
        if credential is None:
            self.emit(
                audit.MISSING_CREDENTIAL,
                audit.RequestMetadata.from_connection(conn),
            )
            raise MissingCredentialError()

        result = self.tokens.verify(credential.token)
        if isinstance(result, TokenRejected):
            self.emit(
                audit.INVALID_CREDENTIAL,
                audit.RequestMetadata.from_connection(conn),
                reason=result.reason.value,
                channel=credential.channel,
                credential_ref=credential_ref(credential.token),
            )
            raise InvalidCredentialError(reason=result.reason.value)

        return Identity(
            email=result.claims.email,
            user_id=result.claims.user_id,
            is_admin=result.claims.is_admin,
            expires_at=result.expires_at,
        )


class AdminGate:
    def __init__(self, emit: AuditSink = audit.emit_security_event):
        self.emit = emit

    def authorize(
        self, identity: Optional[Identity], conn: HTTPConnection
    ) -> Identity:
        if identity is None:
            raise UnauthenticatedError()

        if not identity.is_admin:
            self.emit(
                audit.INSUFFICIENT_PRIVILEGE,
                audit.RequestMetadata.from_connection(conn),
                email=identity.email,
                user_id=identity.user_id,
            )
            raise InsufficientPrivilegeError()

        return identity
