"""CLI tests — commands against a mocked backend.

The CLI builds its HTTP client through ``_client``; tests swap that for
an httpx client on a MockTransport that records every request.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from raingate.cli import main as cli


class FakeBackend:
    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], httpx.Response] = {}

    def on(self, method: str, path: str, status: int = 200, body=None):
        self.routes[(method, path)] = httpx.Response(status, json=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not found"})
        return route


@pytest.fixture()
def backend(monkeypatch):
    fake = FakeBackend()

    def _client(token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return httpx.AsyncClient(
            base_url="http://raingate.test",
            headers=headers,
            transport=httpx.MockTransport(fake.handler),
        )

    monkeypatch.setattr(cli, "_client", _client)
    monkeypatch.delenv("RAINGATE_TOKEN", raising=False)
    return fake


def _invoke(*args):
    return CliRunner().invoke(cli.main, list(args))


def test_login_prints_token(backend):
    backend.on(
        "POST",
        "/api/v1/auth/login",
        body={"email": "alice@example.com", "token": "tok-123", "isAdmin": False,
              "createdAt": "2026-01-01T00:00:00Z"},
    )
    result = _invoke("login", "alice@example.com", "--password", "secret1")

    assert result.exit_code == 0, result.output
    assert "tok-123" in result.output
    sent = json.loads(backend.calls[0].content)
    assert sent == {"email": "alice@example.com", "password": "secret1"}


def test_login_failure_exits_nonzero(backend):
    backend.on("POST", "/api/v1/auth/login", status=401,
               body={"detail": "Invalid email or password", "code": "invalid_login"})
    result = _invoke("login", "alice@example.com", "--password", "wrong-one")
    assert result.exit_code == 1
    assert "Invalid email or password" in result.output


def test_commands_need_a_token(backend):
    result = _invoke("whoami")
    assert result.exit_code == 1
    assert "--token required" in result.output
    assert backend.calls == []


def test_whoami_sends_bearer(backend):
    backend.on(
        "GET",
        "/api/v1/auth/me",
        body={"email": "alice@example.com", "userId": "u-1", "isAdmin": False,
              "expiresAt": "2026-01-08T00:00:00Z"},
    )
    result = _invoke("--token", "tok-123", "whoami")
    assert result.exit_code == 0, result.output
    assert "alice@example.com" in result.output
    assert backend.calls[0].headers["authorization"] == "Bearer tok-123"


def test_token_from_env(backend, monkeypatch):
    backend.on("POST", "/api/v1/access-requests", status=201,
               body={"id": "r-1", "status": "pending"})
    monkeypatch.setenv("RAINGATE_TOKEN", "env-token")
    result = _invoke("submit", "need hourly totals")
    assert result.exit_code == 0, result.output
    assert backend.calls[0].headers["authorization"] == "Bearer env-token"
    assert json.loads(backend.calls[0].content) == {"reason": "need hourly totals"}


def test_requests_defaults_to_pending(backend):
    backend.on("GET", "/api/v1/admin/requests", body=[
        {"id": "r-1", "userId": "u-1", "userEmail": "alice@example.com",
         "reason": "need data", "status": "pending", "adminNotes": None},
        {"id": "r-2", "userId": "u-9", "userEmail": None,
         "reason": "orphaned", "status": "pending", "adminNotes": None},
    ])
    result = _invoke("--token", "admin-tok", "requests")
    assert result.exit_code == 0, result.output
    assert backend.calls[0].url.params["status"] == "pending"
    assert "alice@example.com" in result.output
    assert "<deleted user u-9>" in result.output


def test_requests_all(backend):
    backend.on("GET", "/api/v1/admin/requests", body=[])
    result = _invoke("--token", "admin-tok", "requests", "--all")
    assert result.exit_code == 0
    assert "status" not in backend.calls[0].url.params
    assert "No requests found." in result.output


def test_approve_prints_new_key(backend):
    backend.on("POST", "/api/v1/admin/requests/r-1/approve", body={
        "requestId": "r-1", "userId": "u-1", "email": "alice@example.com",
        "apiKey": "fresh-key", "status": "approved",
    })
    result = _invoke("--token", "admin-tok", "approve", "r-1", "--notes", "ok for ops")
    assert result.exit_code == 0, result.output
    assert "fresh-key" in result.output
    assert json.loads(backend.calls[0].content) == {"adminNotes": "ok for ops"}


def test_approve_as_non_admin(backend):
    backend.on("POST", "/api/v1/admin/requests/r-1/approve", status=403, body={
        "detail": "Admin privileges required for this operation.",
        "code": "insufficient_privilege",
    })
    result = _invoke("--token", "user-tok", "approve", "r-1")
    assert result.exit_code == 1
    assert "Error 403" in result.output


def test_reject_sends_reason(backend):
    backend.on("POST", "/api/v1/admin/requests/r-1/reject", body={
        "requestId": "r-1", "status": "rejected", "adminNotes": "too vague",
    })
    result = _invoke("--token", "admin-tok", "reject", "r-1", "too vague")
    assert result.exit_code == 0, result.output
    assert json.loads(backend.calls[0].content) == {"reason": "too vague"}
    assert "too vague" in result.output


def test_users(backend):
    backend.on("GET", "/api/v1/admin/users", body=[
        {"id": "u-0", "email": "testadmin@centrala.com", "isAdmin": True,
         "createdAt": "2026-01-01T00:00:00Z", "lastUsedAt": "2026-01-02T00:00:00Z"},
    ])
    result = _invoke("--token", "admin-tok", "users")
    assert result.exit_code == 0, result.output
    assert "testadmin@centrala.com" in result.output
