"""User accounts — registration, login, self-service credentials, admin listing.

Every path that mints a credential writes it to ``current_credential``,
replacing the previous one. The stored value is always a token this
process just signed, so it verifies at write time.

Admin status is evaluated by the elevation policy at registration and
re-evaluated at each login, where a disagreeing stored flag is overwritten.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from raingate.auth.elevation import ElevationPolicy, normalize_email
from raingate.auth.password import hash_password, verify_password
from raingate.auth.tokens import TokenClaims, TokenService
from raingate.db.models import User
from raingate.errors import DuplicateResourceError, LoginFailedError, NotFoundError


@dataclass
class CredentialGrant:
    """A user together with the credential just minted for them."""

    user: User
    credential: str


class UserService:
    def __init__(
        self,
        db: AsyncSession,
        tokens: TokenService,
        elevation: ElevationPolicy,
    ):
        self.db = db
        self.tokens = tokens
        self.elevation = elevation

    async def get_by_email(self, email: str) -> User | None:
        q = select(User).where(User.email == normalize_email(email))
        result = await self.db.execute(q)
        return result.scalars().first()

    async def get(self, user_id: str | uuid.UUID) -> User | None:
        try:
            key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self.db.get(User, key)

    # ─── Register ─────────────────────────────────────────

    async def register(self, email: str, password: str) -> CredentialGrant:
        email = normalize_email(email)
        if await self.get_by_email(email):
            raise DuplicateResourceError("Email is already registered")

        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=hash_password(password),
            is_admin=self.elevation(email),
        )
        user.current_credential = self._mint(user)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race on the unique email index.
            await self.db.rollback()
            raise DuplicateResourceError("Email is already registered") from None
        return CredentialGrant(user=user, credential=user.current_credential)

    # ─── Login ────────────────────────────────────────────

    async def login(self, email: str, password: str) -> CredentialGrant:
        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise LoginFailedError()

        user.is_admin = self.elevation(user.email)
        user.last_used_at = datetime.now(timezone.utc)
        user.current_credential = self._mint(user)
        await self.db.commit()
        return CredentialGrant(user=user, credential=user.current_credential)

    # ─── Self-service credential ──────────────────────────

    async def reissue_credential(self, user_id: str | uuid.UUID) -> CredentialGrant:
        """Mint a fresh credential for an authenticated user."""
        user = await self.get(user_id)
        if not user:
            raise NotFoundError("User not found.")

        user.current_credential = self._mint(user)
        await self.db.commit()
        return CredentialGrant(user=user, credential=user.current_credential)

    # ─── Admin ────────────────────────────────────────────

    async def list_users(self, limit: int = 200) -> list[User]:
        q = select(User).order_by(User.created_at.desc()).limit(limit)
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def delete_user(self, user_id: str | uuid.UUID) -> None:
        user = await self.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        await self.db.delete(user)
        await self.db.commit()

    def _mint(self, user: User) -> str:
        return self.tokens.issue(
            TokenClaims(
                email=user.email,
                user_id=str(user.id),
                is_admin=self.elevation(user.email),
            )
        )
