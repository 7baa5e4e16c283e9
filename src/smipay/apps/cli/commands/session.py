"""Local session inspection and logout."""

from __future__ import annotations

import asyncio
import json
import math

import typer

from smipay.apps.cli.runtime import open_context
from smipay.services.api import AuthApi, BackendClient

app = typer.Typer(help="Inspect or end the stored session")


@app.command("status", help="Show whether a session is stored and when it expires.")
def cmd_status(
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
):
    async def _run() -> dict:
        async with open_context() as ctx:
            sessions = ctx.sessions
            session = sessions.load()
            if session is None:
                return {"signed_in": False}
            remaining = sessions.time_until_expiry()
            user = session.cached_user or {}
            return {
                "signed_in": True,
                "expired": sessions.is_expired(),
                "seconds_remaining": None if math.isinf(remaining) else math.ceil(remaining),
                "user": user.get("email") or user.get("phone_number") or user.get("id"),
            }

    status = asyncio.run(_run())
    if as_json:
        typer.echo(json.dumps(status, ensure_ascii=False, indent=2))
        return
    if not status["signed_in"]:
        typer.echo("not signed in")
        raise typer.Exit(1)
    if status["expired"]:
        typer.echo("session expired")
        raise typer.Exit(1)
    remaining = status["seconds_remaining"]
    typer.echo(f"signed in as {status['user'] or '-'}")
    typer.echo(f"expires in: {'-' if remaining is None else f'{remaining}s'}")


@app.command("logout", help="End the session (server call is best effort).")
def cmd_logout(
    local: bool = typer.Option(False, "--local", help="Clear local state without contacting the backend."),
):
    async def _run() -> None:
        async with open_context() as ctx:
            if local:
                ctx.invalidator.end_session()
                return
            async with BackendClient(ctx) as client:
                await AuthApi(client).logout()

    asyncio.run(_run())
    typer.echo("signed out")
