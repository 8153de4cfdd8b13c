#!/usr/bin/env python3
"""
Raingate Access Request Example.

A user asks for API access, an admin looks at the queue, turns one
request down and approves the next. The approved credential then
authenticates the user on the legacy x-api-key header.

Run with: python examples/access_request_flow.py

Requires: pip install httpx
Backend must be running: http://localhost:5001
"""

from _common import admin_client, check_backend, demo_user


def main():
    # ── Setup ─────────────────────────────────────────────────────
    check_backend()
    email, user = demo_user()
    admin = admin_client()

    # ── User files a request ──────────────────────────────────────
    print("\n" + "─" * 60)
    print("User asks for API access...")
    print("─" * 60)

    request = user.post("/access-requests", json={"reason": "rainfall"}).json()
    print(f"\nRequest {request['id']}: {request['status']}")

    # ── Admin reviews the queue ───────────────────────────────────
    pending = admin.get("/admin/requests", params={"status": "pending"}).json()
    print(f"\nPending requests: {len(pending)}")
    for req in pending:
        print(f"  [{req['userEmail']}] {req['reason'][:80]}")

    # ── Too vague: reject ─────────────────────────────────────────
    resp = admin.post(
        f"/admin/requests/{request['id']}/reject", json={"reason": "too vague"}
    )
    print(f"\nRejected: {resp.json()['adminNotes']}")

    # Terminal: a second decision is refused.
    resp = admin.post(f"/admin/requests/{request['id']}/approve")
    print(f"Approve after reject → {resp.status_code} {resp.json()['detail']}")

    # ── User tries again with a real reason ───────────────────────
    request = user.post("/access-requests", json={
        "reason": "Daily precipitation totals for the flood early-warning dashboard",
    }).json()

    resp = admin.post(
        f"/admin/requests/{request['id']}/approve",
        json={"adminNotes": "ok for the dashboard"},
    )
    approval = resp.json()
    print(f"\nApproved {approval['requestId']} for {approval['email']}")
    print(f"  New key: {approval['apiKey'][:24]}...")

    # ── The new key works ─────────────────────────────────────────
    me = user.get("/auth/me", headers={
        "Authorization": "",
        "x-api-key": approval["apiKey"],
    }).json()
    print(f"\nAuthenticated as {me['email']} via x-api-key (admin={me['isAdmin']})")

    history = user.get("/access-requests").json()
    print("\nRequest history:")
    for req in history:
        print(f"  {req['status']:9}  {req['reason'][:60]}")

    assert me["email"] == email


if __name__ == "__main__":
    main()
