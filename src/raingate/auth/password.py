"""Password secret hashing.

bcrypt with a random salt per hash; the stored value starts with "$2b$".
Passwords are truncated to 72 bytes (bcrypt's limit). The work factor
comes from settings so tests can run with the minimum of 4 rounds.
"""

import bcrypt

from raingate.config import settings


def hash_password(password: str, rounds: int | None = None) -> str:
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of ``password`` against a stored bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
