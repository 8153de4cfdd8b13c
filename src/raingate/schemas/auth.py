"""Pydantic schemas for registration, login and identity.

Wire format is camelCase (``isAdmin``, ``apiKey``); Python attributes stay
snake_case. Bad email/password input fails validation, which the app
renders as 400.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MIN_PASSWORD_LENGTH = 6


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Credentials(CamelModel):
    """Body of both register and login."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)

    @field_validator("email")
    @classmethod
    def email_must_look_like_one(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition("@")
        if not local or not domain or " " in v:
            raise ValueError("Valid email is required")
        return v


class RegisterResponse(CamelModel):
    api_key: str


class LoginResponse(CamelModel):
    email: str
    token: str
    is_admin: bool
    created_at: datetime


class ApiKeyResponse(CamelModel):
    api_key: str


class IdentityRead(CamelModel):
    email: str
    user_id: str
    is_admin: bool
    expires_at: datetime


class UserRead(CamelModel):
    """Admin view of a user. Never carries the credential or password hash."""

    id: str
    email: str
    is_admin: bool
    created_at: datetime
    last_used_at: datetime


class UserCreated(CamelModel):
    """Returned to the admin who created the account, credential included."""

    id: str
    email: str
    api_key: str
    is_admin: bool
    created_at: datetime
