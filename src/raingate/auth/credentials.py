"""Credential extraction from inbound requests.

A credential can arrive on one of several transport channels. Channels
are tried in list order and the first one holding a value wins; adding or
retiring a channel is a list edit in ``default_channels``.

Default order:
1. ``Authorization: Bearer <token>``
2. the ``jwt`` cookie set at login
3. the legacy ``x-api-key`` header carrying the raw token (old clients only)
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from starlette.requests import HTTPConnection


class CredentialChannel(Protocol):
    """One place a token may be carried."""

    name: str

    def extract(self, conn: HTTPConnection) -> Optional[str]:
        ...


@dataclass(frozen=True)
class ExtractedCredential:
    token: str
    channel: str


class BearerHeaderChannel:
    name = "bearer"
    prefix = "Bearer "

    def extract(self, conn: HTTPConnection) -> Optional[str]:
        header = conn.headers.get("authorization")
        if not header or not header.startswith(self.prefix):
            return None
        return header[len(self.prefix):].strip() or None


class CookieChannel:
    name = "cookie"

    def __init__(self, cookie_name: str):
        self.cookie_name = cookie_name

    def extract(self, conn: HTTPConnection) -> Optional[str]:
        return conn.cookies.get(self.cookie_name) or None


class LegacyHeaderChannel:
    name = "legacy_header"

    def __init__(self, header_name: str):
        self.header_name = header_name

    def extract(self, conn: HTTPConnection) -> Optional[str]:
        value = conn.headers.get(self.header_name)
        return value.strip() if value and value.strip() else None


def default_channels(
    cookie_name: str = "jwt", legacy_header: str = "x-api-key"
) -> list[CredentialChannel]:
    return [
        BearerHeaderChannel(),
        CookieChannel(cookie_name),
        LegacyHeaderChannel(legacy_header),
    ]


class CredentialExtractor:
    """Finds the candidate token on a request, or reports that there is none."""

    def __init__(self, channels: Sequence[CredentialChannel]):
        self.channels = list(channels)

    def extract(self, conn: HTTPConnection) -> Optional[ExtractedCredential]:
        for channel in self.channels:
            token = channel.extract(conn)
            if token:
                return ExtractedCredential(token=token, channel=channel.name)
        return None
