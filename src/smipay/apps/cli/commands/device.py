"""Device identity and attestation header commands."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

import typer

from smipay.apps.cli.runtime import open_context
from smipay.services.attestation import device as device_info

app = typer.Typer(help="Device identity, fingerprint and attestation headers")


def _parse_body(raw: Optional[str]):
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@app.command("info", help="Show the device identity and detected capabilities.")
def cmd_info(
    as_json: bool = typer.Option(False, "--json", help="Print machine-readable output."),
):
    async def _run() -> dict:
        async with open_context() as ctx:
            env = ctx.environment
            return {
                "device_id": ctx.identity.get_device_id(),
                "fingerprint": await ctx.fingerprints.try_get_fingerprint(),
                "crypto_backend": ctx.crypto_backend,
                "crypto_degraded": ctx.crypto_degraded,
                "user_agent": env.user_agent if env else None,
                "os": device_info.os_name(env.user_agent) if env else None,
                "platform": ctx.settings.platform,
                "app_version": ctx.settings.app_version,
            }

    info = asyncio.run(_run())
    if as_json:
        typer.echo(json.dumps(info, ensure_ascii=False, indent=2))
        return
    for key, value in info.items():
        typer.echo(f"{key}: {value if value is not None else '-'}")
    if info["crypto_degraded"]:
        typer.secho("warning: no strong hash available; signatures are not cryptographically secure", fg="yellow")


@app.command("headers", help="Print the headers the client would attach to a request.")
def cmd_headers(
    body: Optional[str] = typer.Option(None, "--body", "-b", help="Request body (JSON or raw text) to sign."),
    with_geo: bool = typer.Option(False, "--with-geo", help="Acquire a position before building headers."),
):
    async def _run() -> dict:
        async with open_context() as ctx:
            if with_geo:
                await ctx.geolocation.refresh()
            headers = await ctx.device_metadata_headers()
            if not ctx.settings.bypass_security_headers:
                envelope = await ctx.security_envelope(_parse_body(body))
                headers.update(envelope.as_headers())
            token = ctx.sessions.access_token()
            if token:
                headers["Authorization"] = "Bearer <redacted>"
            return headers

    typer.echo(json.dumps(asyncio.run(_run()), ensure_ascii=False, indent=2))


@app.command("reset", help="Forget the device identity; a new one is created on next use.")
def cmd_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
):
    if not yes:
        typer.confirm("The backend will see this installation as a new device. Continue?", abort=True)

    async def _run() -> str:
        async with open_context() as ctx:
            ctx.identity.reset()
            return ctx.identity.get_device_id()

    typer.echo(f"new device id: {asyncio.run(_run())}")
