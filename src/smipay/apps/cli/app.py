from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from smipay import __version__
from smipay.apps.cli import runtime
from smipay.apps.cli.commands import device, session
from smipay.services.attestation import canonical_body, detect_crypto
from smipay.services.attestation.crypto import CryptoUnavailableError
from smipay.services.logging import setup_logging
from smipay.services.settings import Settings, SettingsError

app = typer.Typer(help="smipay client: device attestation, request signing and sessions", no_args_is_help=True)
app.add_typer(device.app, name="device")
app.add_typer(session.app, name="session")


def _version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML settings file."),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="State profile name."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    version: bool = typer.Option(False, "--version", callback=_version, is_eager=True, help="Show version and exit."),
):
    try:
        settings = Settings.from_sources(config_path=config)
        if profile:
            settings = settings.with_overrides(profile=profile)
    except SettingsError as exc:
        raise typer.BadParameter(str(exc)) from exc
    runtime.configure(settings)
    setup_logging(settings, level=log_level or "WARNING")


@app.command("sign", help="Print the HMAC-SHA256 signature of BODY (JSON is canonicalised first).")
def cmd_sign(
    body: str = typer.Argument(..., help="Request body to sign."),
    secret: Optional[str] = typer.Option(None, "--secret", help="Signing secret (defaults to the configured one)."),
    show_canonical: bool = typer.Option(False, "--canonical", help="Also print the exact signed text."),
):
    settings = runtime.get_settings()
    try:
        crypto = detect_crypto(settings.crypto_backend, require_strong=settings.require_strong_crypto)
    except CryptoUnavailableError as exc:
        typer.secho(str(exc), fg="red", err=True)
        raise typer.Exit(2)
    try:
        parsed = json.loads(body)
    except ValueError:
        parsed = body
    text = canonical_body(parsed) or ""
    key = (secret if secret is not None else settings.api_secret).encode("utf-8")
    if show_canonical:
        typer.echo(text)
    typer.echo(crypto.hmac(key, text.encode("utf-8")).hex())


if __name__ == "__main__":
    app()
