"""Signed identity tokens — issuance and verification.

Tokens are HS256 JWTs carrying ``{email, userId, isAdmin, exp, iat, jti}``.
The random ``jti`` makes every issued token distinct, even two minted for
the same identity within one second.
A single symmetric secret is handed in at construction: no key ids,
no rotation, no revocation list. Anything that can see the secret can
mint a token for any identity.

verify() never raises. It returns either a VerifiedToken or a
TokenRejected that says *why* (malformed, bad signature, expired) so the
caller can log the cause while answering the client with one message.
"""

import binascii
import enum
import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt
from jwt.utils import base64url_decode, base64url_encode

DEFAULT_TTL = timedelta(days=7)


@dataclass(frozen=True)
class TokenClaims:
    """The identity a token vouches for."""

    email: str
    user_id: str
    is_admin: bool


@dataclass(frozen=True)
class VerifiedToken:
    claims: TokenClaims
    expires_at: datetime


class TokenFailure(str, enum.Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenRejected:
    reason: TokenFailure
    detail: str


VerifyResult = Union[VerifiedToken, TokenRejected]


def credential_ref(token: str) -> str:
    """Opaque short reference to a token, safe to put in logs."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]


class TokenService:
    """Signs and verifies identity tokens with one process-wide secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = DEFAULT_TTL,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, claims: TokenClaims, ttl: Optional[timedelta] = None) -> str:
        """Sign ``claims`` into a token expiring ``ttl`` from now (default 7 days)."""
        now = datetime.now(timezone.utc)
        payload = {
            "email": claims.email,
            "userId": claims.user_id,
            "isAdmin": claims.is_admin,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.default_ttl),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> VerifyResult:
        """Check signature and expiry and rebuild the claims."""
        if not isinstance(token, str) or not _is_canonical(token):
            return TokenRejected(TokenFailure.MALFORMED, "Token is not a canonical JWS")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenRejected(TokenFailure.EXPIRED, "Token has expired")
        except jwt.InvalidSignatureError:
            return TokenRejected(TokenFailure.BAD_SIGNATURE, "Signature verification failed")
        except jwt.InvalidTokenError as e:
            return TokenRejected(TokenFailure.MALFORMED, f"Invalid token: {e}")

        email = payload.get("email")
        user_id = payload.get("userId")
        is_admin = payload.get("isAdmin")
        if (
            not isinstance(email, str)
            or not isinstance(user_id, str)
            or not isinstance(is_admin, bool)
        ):
            return TokenRejected(TokenFailure.MALFORMED, "Token is missing identity claims")

        try:
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (OverflowError, ValueError, OSError, TypeError):
            return TokenRejected(TokenFailure.MALFORMED, "Token expiry is out of range")

        return VerifiedToken(
            claims=TokenClaims(email=email, user_id=user_id, is_admin=is_admin),
            expires_at=expires_at,
        )


def _is_canonical(token: str) -> bool:
    """Every segment must re-encode to itself.

    base64url tolerates stray trailing bits, so two different strings can
    decode to the same signature. Rejecting non-canonical segments makes any
    altered character fail verification.
    """
    segments = token.split(".")
    if len(segments) != 3 or not all(segments):
        return False
    try:
        return all(
            base64url_encode(base64url_decode(seg)).decode("ascii") == seg
            for seg in segments
        )
    except (binascii.Error, ValueError, UnicodeError):
        return False
