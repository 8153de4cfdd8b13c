"""Raingate CLI — log in, file access requests, review them as an admin.

Usage:
    raingate login alice@example.com             # Prints a credential
    raingate whoami                              # Identity behind the credential
    raingate submit "need rainfall data for ops"  # File an access request
    raingate requests                            # Pending requests (admin)
    raingate approve <request-id>                # Approve, prints the new key (admin)
    raingate reject <request-id> "not justified" # Reject with a reason (admin)
    raingate users                               # List users (admin)

The credential is read from --token or RAINGATE_TOKEN and sent as a
Bearer header.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import sys
from typing import Optional

import click
import httpx

from raingate import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5001"


def _api_url() -> str:
    return os.environ.get("RAINGATE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Raingate backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    if not token:
        click.secho(
            "Error: --token required (or set RAINGATE_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return token


def _fail_on_error(r: httpx.Response) -> None:
    """Print the API's error detail and exit non-zero on any 4xx/5xx."""
    if r.status_code < 400:
        return
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _status_color(status: str) -> str:
    return {
        "pending": "yellow",
        "approved": "green",
        "rejected": "red",
    }.get(status, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="raingate")
@click.option("--token", envvar="RAINGATE_TOKEN", help="Credential (or set RAINGATE_TOKEN)")
@click.pass_context
def main(ctx: click.Context, token: Optional[str]):
    """Raingate — credentials and API access requests for the rainfall API."""
    ctx.obj = {"token": token}


# ---------------------------------------------------------------------------
# raingate login / whoami
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.password_option(confirmation_prompt=False)
def login(email: str, password: str):
    """Log in and print the credential (export it as RAINGATE_TOKEN)."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/login", json={"email": email, "password": password})
        _fail_on_error(r)
        data = r.json()
        role = click.style("admin", fg="magenta") if data["isAdmin"] else "user"
        click.secho(f"Logged in as {data['email']} ({role})", fg="green", err=True)
        click.echo(data["token"])


@main.command()
@click.pass_obj
def whoami(obj: dict):
    """Show the identity behind the current credential."""
    _run(_whoami_impl(_require_token(obj["token"])))


async def _whoami_impl(token: str):
    async with _client(token) as c:
        r = await c.get("/api/v1/auth/me")
        _fail_on_error(r)
        me = r.json()
        click.echo(f"{me['email']}  user={me['userId']}  admin={me['isAdmin']}")
        click.echo(f"  expires {me['expiresAt']}")


# ---------------------------------------------------------------------------
# raingate submit
# ---------------------------------------------------------------------------


@main.command()
@click.argument("reason")
@click.pass_obj
def submit(obj: dict, reason: str):
    """File an API access request. REASON says why you need access."""
    _run(_submit_impl(_require_token(obj["token"]), reason))


async def _submit_impl(token: str, reason: str):
    async with _client(token) as c:
        r = await c.post("/api/v1/access-requests", json={"reason": reason})
        _fail_on_error(r)
        req = r.json()
        click.secho(f"Request {req['id']} filed ({req['status']})", fg="green")


# ---------------------------------------------------------------------------
# raingate requests (admin)
# ---------------------------------------------------------------------------


@main.command()
@click.option("--all", "show_all", is_flag=True, help="Show approved/rejected too")
@click.pass_obj
def requests(obj: dict, show_all: bool):
    """List API access requests."""
    _run(_requests_impl(_require_token(obj["token"]), show_all))


async def _requests_impl(token: str, show_all: bool):
    async with _client(token) as c:
        params = {} if show_all else {"status": "pending"}
        r = await c.get("/api/v1/admin/requests", params=params)
        _fail_on_error(r)
        reqs = r.json()

        if not reqs:
            click.echo("No pending requests." if not show_all else "No requests found.")
            return

        click.secho(f"Access requests ({len(reqs)}):", bold=True)
        click.echo()
        for req in reqs:
            status_str = click.style(req["status"], fg=_status_color(req["status"]))
            who = req.get("userEmail") or f"<deleted user {req['userId']}>"
            click.echo(f"  {req['id']}  {status_str}  {who}")
            click.echo(f"    {req['reason']}")
            if req.get("adminNotes"):
                click.echo(f"    Notes: {req['adminNotes']}")
            click.echo()


# ---------------------------------------------------------------------------
# raingate approve / reject (admin)
# ---------------------------------------------------------------------------


@main.command()
@click.argument("request_id")
@click.option("--notes", "-n", help="Admin notes to store on the request")
@click.pass_obj
def approve(obj: dict, request_id: str, notes: Optional[str]):
    """Approve a pending request and print the user's new credential."""
    _run(_approve_impl(_require_token(obj["token"]), request_id, notes))


async def _approve_impl(token: str, request_id: str, notes: Optional[str]):
    async with _client(token) as c:
        body = {"adminNotes": notes} if notes else {}
        r = await c.post(f"/api/v1/admin/requests/{request_id}/approve", json=body)
        _fail_on_error(r)
        data = r.json()
        click.secho(f"Approved {request_id} for {data['email']}", fg="green")
        click.echo(data["apiKey"])


@main.command()
@click.argument("request_id")
@click.argument("reason")
@click.pass_obj
def reject(obj: dict, request_id: str, reason: str):
    """Reject a pending request. REASON must be at least 5 characters."""
    _run(_reject_impl(_require_token(obj["token"]), request_id, reason))


async def _reject_impl(token: str, request_id: str, reason: str):
    async with _client(token) as c:
        r = await c.post(
            f"/api/v1/admin/requests/{request_id}/reject", json={"reason": reason}
        )
        _fail_on_error(r)
        data = r.json()
        click.secho(f"Rejected {request_id}: {data['adminNotes']}", fg="yellow")


# ---------------------------------------------------------------------------
# raingate users (admin)
# ---------------------------------------------------------------------------


@main.command()
@click.pass_obj
def users(obj: dict):
    """List registered users."""
    _run(_users_impl(_require_token(obj["token"])))


async def _users_impl(token: str):
    async with _client(token) as c:
        r = await c.get("/api/v1/admin/users")
        _fail_on_error(r)
        for u in r.json():
            flag = click.style(" admin", fg="magenta") if u["isAdmin"] else ""
            click.echo(f"  {u['id']}  {u['email']}{flag}  last used {u['lastUsedAt']}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
