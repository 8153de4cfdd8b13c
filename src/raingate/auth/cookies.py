"""Credential cookie transport (server → client).

Login sets the credential as an HTTP-only ``jwt`` cookie, ``secure`` only
in production. Logout overwrites it with an empty value and max-age 0.
"""

from datetime import timedelta

from starlette.responses import Response

from raingate.config import Settings


def set_credential_cookie(
    response: Response, token: str, settings: Settings
) -> None:
    response.set_cookie(
        key=settings.credential_cookie_name,
        value=token,
        max_age=int(timedelta(days=settings.token_ttl_days).total_seconds()),
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def clear_credential_cookie(response: Response, settings: Settings) -> None:
    response.set_cookie(
        key=settings.credential_cookie_name,
        value="",
        max_age=0,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
