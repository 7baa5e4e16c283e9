from __future__ import annotations

from pathlib import Path
from typing import Callable
import logging
import time

import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from smipay.adapters.storage import MemoryStore
from smipay.services.attestation import AttestationContext, DeviceEnvironment, LocationProvider
from smipay.services.settings import Settings

DESKTOP_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0 Safari/537.36"
TEST_SECRET = "test-secret"


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeClock:
    def __init__(self, now: float | None = None) -> None:
        self.now = time.time() if now is None else now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.entries.get((service, username))

    def set_password(self, service, username, password):
        self.entries[(service, username)] = password

    def delete_password(self, service, username):
        if (service, username) not in self.entries:
            raise PasswordDeleteError(username)
        del self.entries[(service, username)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_keyring():
    previous = keyring.get_keyring()
    backend = InMemoryKeyring()
    keyring.set_keyring(backend)
    try:
        yield backend
    finally:
        keyring.set_keyring(previous)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings().with_overrides(state_dir=tmp_path, api_secret=TEST_SECRET, app_version="1.2.3")


@pytest.fixture
def environment() -> DeviceEnvironment:
    return DeviceEnvironment(
        user_agent=DESKTOP_UA,
        locale="en-US",
        screen_width=1920,
        screen_height=1080,
        color_depth=24,
        timezone_offset=-60,
    )


@pytest.fixture
def make_context(settings: Settings, environment: DeviceEnvironment, clock: FakeClock) -> Callable[..., AttestationContext]:
    def _make(
        *,
        provider: LocationProvider | None = None,
        durable: MemoryStore | None = None,
        ephemeral: MemoryStore | None = None,
        interactive: bool = True,
        **overrides,
    ) -> AttestationContext:
        return AttestationContext.from_settings(
            settings.with_overrides(**overrides) if overrides else settings,
            location_provider=provider,
            environment=environment,
            durable=durable if durable is not None else MemoryStore(),
            ephemeral=ephemeral if ephemeral is not None else MemoryStore(),
            interactive=interactive,
            clock=clock,
        )

    return _make


@pytest.fixture(autouse=True)
def _restore_smipay_logger():
    logger = logging.getLogger("smipay")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate
