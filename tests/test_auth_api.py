"""Auth API tests.

Tests cover:
1. Registration, duplicate prevention, input validation
2. Login → credential in body and cookie, admin flag from the elevation rule
3. Logout clears the cookie
4. /me over each credential channel, 401 vs 403
5. Self-service credential (request-access)
"""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select
from structlog.testing import capture_logs

from raingate.auth.tokens import TokenClaims, VerifiedToken
from raingate.config import settings
from raingate.db.models import User

ADMIN_EMAIL = settings.admin_email


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


async def _stored_user(session_factory, email: str) -> User:
    async with session_factory() as db:
        result = await db.execute(select(User).where(User.email == email))
        return result.scalars().one()


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_returns_own_credential(client, tokens):
    email = _email("reg")
    r = await client.post("/api/v1/auth/register", json={"email": email, "password": "secret1"})
    assert r.status_code == 201
    key = r.json()["apiKey"]

    verified = tokens.verify(key)
    assert isinstance(verified, VerifiedToken)
    assert verified.claims.email == email
    assert verified.claims.is_admin is False


@pytest.mark.asyncio
async def test_register_stores_hash_not_password(client, session_factory):
    email = _email("hash")
    await client.post("/api/v1/auth/register", json={"email": email, "password": "secret1"})
    user = await _stored_user(session_factory, email)
    assert user.password_hash != "secret1"
    assert user.password_hash.startswith("$2")
    assert user.current_credential


@pytest.mark.asyncio
async def test_register_duplicate_email_case_insensitive(client):
    """Can't register the same address twice, whatever the case."""
    local = f"dup-{uuid.uuid4().hex[:8]}"
    r1 = await client.post(
        "/api/v1/auth/register", json={"email": f"{local}@Example.com", "password": "secret1"}
    )
    assert r1.status_code == 201

    r2 = await client.post(
        "/api/v1/auth/register", json={"email": f"{local}@example.COM", "password": "secret2"}
    )
    assert r2.status_code == 409
    assert r2.json()["code"] == "duplicate_resource"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"email": "someone@example.com", "password": "abc"},
        {"email": "not-an-email", "password": "secret1"},
        {"email": "", "password": "secret1"},
        {"password": "secret1"},
        {"email": "someone@example.com"},
    ],
)
async def test_register_bad_input_is_400(client, body):
    r = await client.post("/api/v1/auth/register", json=body)
    assert r.status_code == 400
    assert r.json()["code"] == "validation_failure"


@pytest.mark.asyncio
async def test_register_admin_address_is_admin(client, tokens):
    r = await client.post(
        "/api/v1/auth/register", json={"email": ADMIN_EMAIL.upper(), "password": "secret1"}
    )
    assert r.status_code == 201
    assert tokens.verify(r.json()["apiKey"]).claims.is_admin is True


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_regular_user(client, tokens, login):
    """A regular user logs in and gets a non-admin credential valid for 7 days."""
    email = _email("alice")
    body = await login(email)

    assert body["email"] == email
    assert body["isAdmin"] is False
    assert "createdAt" in body

    verified = tokens.verify(body["token"])
    assert verified.claims.email == email
    assert verified.claims.is_admin is False
    r = await client.get("/api/v1/auth/me", headers=_bearer(body["token"]))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_admin_address(client, tokens, login):
    body = await login(ADMIN_EMAIL)
    assert body["isAdmin"] is True
    assert tokens.verify(body["token"]).claims.is_admin is True


@pytest.mark.asyncio
async def test_login_overrides_stored_admin_flag(client, tokens, login, session_factory):
    """The elevation rule decides at login, not the stored flag."""
    email = _email("flag")
    await login(email)
    await login(ADMIN_EMAIL)

    async with session_factory() as db:
        regular = (await db.execute(select(User).where(User.email == email))).scalars().one()
        admin = (await db.execute(select(User).where(User.email == ADMIN_EMAIL))).scalars().one()
        regular.is_admin = True
        admin.is_admin = False
        await db.commit()

    assert (await login(email, register=False))["isAdmin"] is False
    assert (await login(ADMIN_EMAIL, register=False))["isAdmin"] is True

    assert (await _stored_user(session_factory, email)).is_admin is False
    assert (await _stored_user(session_factory, ADMIN_EMAIL)).is_admin is True


@pytest.mark.asyncio
async def test_login_replaces_current_credential(client, login, session_factory):
    email = _email("rotate")
    first = await login(email)
    second = await login(email, register=False)

    user = await _stored_user(session_factory, email)
    assert user.current_credential == second["token"]
    # The earlier credential is not revoked; it stays valid until it expires.
    r = await client.get("/api/v1/auth/me", headers=_bearer(first["token"]))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_sets_cookie(client):
    email = _email("cookie")
    await client.post("/api/v1/auth/register", json={"email": email, "password": "secret1"})
    r = await client.post("/api/v1/auth/login", json={"email": email, "password": "secret1"})
    assert r.status_code == 200

    cookie = r.headers["set-cookie"]
    assert cookie.startswith(f"jwt={r.json()['token']}")
    lowered = cookie.lower()
    assert "httponly" in lowered
    assert "samesite=lax" in lowered
    assert "path=/" in lowered
    assert "max-age=604800" in lowered
    # Not production, so no Secure flag.
    assert "; secure" not in lowered


@pytest.mark.asyncio
async def test_login_wrong_password(client, login):
    email = _email("wrong")
    await login(email)
    r = await client.post("/api/v1/auth/login", json={"email": email, "password": "nope-nope"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    r = await client.post(
        "/api/v1/auth/login", json={"email": _email("ghost"), "password": "secret1"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_is_case_insensitive_on_email(client, login):
    local = f"mixed-{uuid.uuid4().hex[:8]}"
    await login(f"{local}@example.com")
    r = await client.post(
        "/api/v1/auth/login", json={"email": f"{local.upper()}@EXAMPLE.com", "password": "secret1"}
    )
    assert r.status_code == 200


# ═══════════════════════════════════════════════════════════
# Logout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_logout_clears_cookie(client):
    r = await client.post("/api/v1/auth/logout")
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Logged out successfully"}

    cookie = r.headers["set-cookie"].lower()
    assert cookie.startswith("jwt=")
    assert "max-age=0" in cookie


# ═══════════════════════════════════════════════════════════
# /me and credential channels
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_me_via_bearer(client, login):
    email = _email("me")
    body = await login(email)
    r = await client.get("/api/v1/auth/me", headers=_bearer(body["token"]))
    assert r.status_code == 200
    me = r.json()
    assert me["email"] == email
    assert me["isAdmin"] is False
    assert "userId" in me
    assert "expiresAt" in me


@pytest.mark.asyncio
async def test_me_via_cookie(client, login):
    body = await login(_email("me-cookie"))
    client.cookies.set("jwt", body["token"])
    r = await client.get("/api/v1/auth/me")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_me_via_legacy_header(client, login):
    body = await login(_email("me-legacy"))
    r = await client.get("/api/v1/auth/me", headers={"x-api-key": body["token"]})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_bearer_takes_precedence_over_cookie(client, login, tokens):
    body = await login(_email("prec"))
    client.cookies.set("jwt", "garbage")
    r = await client.get("/api/v1/auth/me", headers=_bearer(body["token"]))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_me_without_credential_is_401(client):
    with capture_logs() as logs:
        r = await client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Authentication token is required."
    assert any(e["event"] == "security.missing_credential" for e in logs)


@pytest.mark.asyncio
async def test_me_with_garbage_is_403(client):
    r = await client.get("/api/v1/auth/me", headers=_bearer("this-is-not-a-jwt"))
    assert r.status_code == 403
    assert r.json()["detail"] == "Invalid or expired authentication token."


@pytest.mark.asyncio
async def test_me_with_expired_credential_is_403(client, tokens):
    expired = tokens.issue(
        TokenClaims(email="late@example.com", user_id=str(uuid.uuid4()), is_admin=False),
        ttl=timedelta(seconds=-1),
    )
    with capture_logs() as logs:
        r = await client.get("/api/v1/auth/me", headers=_bearer(expired))
    assert r.status_code == 403
    # The client message does not reveal the cause; the audit event does.
    assert "expired" not in r.json()["code"]
    [event] = [e for e in logs if e["event"] == "security.invalid_credential"]
    assert event["reason"] == "expired"


@pytest.mark.asyncio
async def test_me_with_tampered_credential_is_403(client, login):
    token = (await login(_email("tamper")))["token"]
    head, payload, sig = token.split(".")
    flipped = sig[:5] + ("A" if sig[5] != "A" else "B") + sig[6:]
    r = await client.get("/api/v1/auth/me", headers=_bearer(f"{head}.{payload}.{flipped}"))
    assert r.status_code == 403


# ═══════════════════════════════════════════════════════════
# Self-service credential
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_request_access_mints_own_credential(client, tokens, login, session_factory):
    email = _email("self")
    body = await login(email)

    r = await client.post("/api/v1/auth/request-access", headers=_bearer(body["token"]))
    assert r.status_code == 200
    key = r.json()["apiKey"]

    claims = tokens.verify(key).claims
    assert claims.email == email
    assert claims.is_admin is False

    user = await _stored_user(session_factory, email)
    assert user.current_credential == key


@pytest.mark.asyncio
async def test_request_access_needs_credential(client):
    r = await client.post("/api/v1/auth/request-access")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_request_access_for_deleted_user_is_404(client, tokens):
    ghost = tokens.issue(
        TokenClaims(email="ghost@example.com", user_id=str(uuid.uuid4()), is_admin=False)
    )
    r = await client.post("/api/v1/auth/request-access", headers=_bearer(ghost))
    assert r.status_code == 404
    assert r.json()["detail"] == "User not found."
