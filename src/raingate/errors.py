"""Domain error taxonomy.

Every failure a route can surface is one of these. Each class carries the
HTTP status it maps to and a short machine code; main.py registers a single
handler that renders them, so services never build HTTP responses.
"""

from typing import Optional


class RaingateError(Exception):
    """Base class. Anything not derived from this is answered with a 500."""

    status_code: int = 500
    code: str = "unexpected"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ─── Authentication / authorization ──────────────────────


class MissingCredentialError(RaingateError):
    """No credential on any transport channel."""

    status_code = 401
    code = "missing_credential"
    default_message = "Authentication token is required."


class InvalidCredentialError(RaingateError):
    """A credential was presented but did not verify.

    ``reason`` keeps the underlying cause (malformed, bad signature,
    expired) for audit; the client only ever sees the collapsed message.
    """

    status_code = 403
    code = "invalid_credential"
    default_message = "Invalid or expired authentication token."

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class UnauthenticatedError(RaingateError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required."


class InsufficientPrivilegeError(RaingateError):
    status_code = 403
    code = "insufficient_privilege"
    default_message = "Admin privileges required for this operation."


class LoginFailedError(RaingateError):
    status_code = 401
    code = "invalid_login"
    default_message = "Invalid email or password"


# ─── Input / resources / state ───────────────────────────


class InvalidInputError(RaingateError):
    status_code = 400
    code = "validation_failure"
    default_message = "Invalid input"


class DuplicateResourceError(RaingateError):
    status_code = 409
    code = "duplicate_resource"
    default_message = "Resource already exists"


class NotFoundError(RaingateError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class InvalidStateError(RaingateError):
    """A transition was attempted from a state that does not allow it."""

    status_code = 400
    code = "invalid_state"
    default_message = "Request is not pending"
