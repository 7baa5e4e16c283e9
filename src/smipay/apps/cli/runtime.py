"""Process-wide CLI state: resolved settings and context construction."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import typer

from smipay.services.attestation import AttestationContext
from smipay.services.settings import Settings, SettingsError

_settings: Optional[Settings] = None


def configure(settings: Settings) -> None:
    global _settings
    _settings = settings


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        try:
            _settings = Settings.from_sources()
        except SettingsError as exc:
            raise typer.BadParameter(str(exc)) from exc
    return _settings


def reset() -> None:
    global _settings
    _settings = None


@asynccontextmanager
async def open_context(*, start: bool = False) -> AsyncIterator[AttestationContext]:
    """Context for one command; ``start=True`` also runs the background pollers."""
    ctx = AttestationContext.from_settings(get_settings())
    if start:
        await ctx.start()
    try:
        yield ctx
    finally:
        await ctx.stop()
