"""
Shared helpers for Raingate examples.

Handles the health check and register + login so each example can focus
on its specific workflow.
"""

import os
import sys
import uuid

import httpx

BASE = os.environ.get("RAINGATE_API_URL", "http://localhost:5001").rstrip("/") + "/api/v1"
ADMIN_EMAIL = os.environ.get("RAINGATE_ADMIN_EMAIL", "testadmin@centrala.com")
ADMIN_PASSWORD = os.environ.get("RAINGATE_ADMIN_PASSWORD", "demo-password-123")


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  uvicorn raingate.main:app --reload --port 5001")
        sys.exit(1)

    health = resp.json()
    print("Backend health:")
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    if health["status"] != "healthy":
        print("\nERROR: Database is not reachable. Run migrations: alembic upgrade head")
        sys.exit(1)


def login(email: str, password: str) -> dict:
    """Register (if needed) and log in, returning the login body."""
    resp = httpx.post(
        f"{BASE}/auth/register",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code not in (201, 409):  # 409 = already exists
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    resp = httpx.post(
        f"{BASE}/auth/login",
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"ERROR: Login failed for {email}: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()


def client_for(token: str) -> httpx.Client:
    return httpx.Client(
        base_url=BASE,
        timeout=10,
        headers={"Authorization": f"Bearer {token}"},
    )


def demo_user() -> tuple[str, httpx.Client]:
    """Fresh user per run so examples are idempotent."""
    email = f"demo-{uuid.uuid4().hex[:8]}@example.com"
    body = login(email, "demo-password-123")
    print(f"  User:  {email} (admin={body['isAdmin']})")
    return email, client_for(body["token"])


def admin_client() -> httpx.Client:
    body = login(ADMIN_EMAIL, ADMIN_PASSWORD)
    if not body["isAdmin"]:
        print(f"ERROR: {ADMIN_EMAIL} is not the configured admin address")
        sys.exit(1)
    print(f"  Admin: {ADMIN_EMAIL}")
    return client_for(body["token"])
