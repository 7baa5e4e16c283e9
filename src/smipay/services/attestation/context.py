"""The object that owns all attestation and session state for one application run."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable
from urllib.parse import urlsplit
import logging
import time

from smipay.adapters.storage import JsonFileStore, KeyringStore, KeyValueStore, MemoryStore
from smipay.adapters.storage.json_file import state_path
from smipay.config import const
from smipay.domain import Event, SecurityEnvelope
from smipay.services.eventbus import LocalEventBus
from smipay.services.session import AuthCookieJar, SessionInvalidator, SessionStore, SessionWatcher
from smipay.services.settings import Settings

from . import device as device_info
from .crypto import CryptoCapability, detect_crypto
from .device import DeviceEnvironment
from .fingerprint import FingerprintGenerator
from .geolocation import GeolocationAttester, LocationProvider, NullLocationProvider, StaticLocationProvider
from .identity import IdentityStore
from .signing import Body, SignatureEngine

__all__ = ["AttestationContext"]

_log = logging.getLogger("smipay.attest")


@dataclass
class AttestationContext:
    """Constructed once at startup; :meth:`aclose` on logout or shutdown.

    ``interactive=False`` models a context without durable client storage or a
    device environment (a server-side caller): the identity and fingerprint
    fall back to their sentinels and only those two metadata headers are sent.
    """

    settings: Settings
    crypto: CryptoCapability
    bus: LocalEventBus
    durable: KeyValueStore
    ephemeral: KeyValueStore
    environment: DeviceEnvironment | None
    identity: IdentityStore
    fingerprints: FingerprintGenerator
    signer: SignatureEngine
    geolocation: GeolocationAttester
    sessions: SessionStore
    invalidator: SessionInvalidator
    watcher: SessionWatcher
    interactive: bool = True
    _unsubscribe: list[Callable[[], None]] = field(default_factory=list, init=False, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        location_provider: LocationProvider | None = None,
        environment: DeviceEnvironment | None = None,
        durable: KeyValueStore | None = None,
        ephemeral: KeyValueStore | None = None,
        secrets: KeyValueStore | None = None,
        bus: LocalEventBus | None = None,
        interactive: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> "AttestationContext":
        crypto = detect_crypto(settings.crypto_backend, require_strong=settings.require_strong_crypto)
        if settings.uses_default_secret:
            _log.warning("signing with the built-in default secret; set SMIPAY_API_SECRET")

        base = settings.state_path()
        cookie_path: Path | None = None
        if durable is None:
            durable = JsonFileStore(state_path(base))
            cookie_path = base / "cookies.lwp"
        ephemeral = ephemeral if ephemeral is not None else MemoryStore()
        if secrets is None and settings.use_keyring:
            secrets = KeyringStore(settings.profile)
        bus = bus or LocalEventBus()

        if location_provider is None:
            if settings.latitude is not None and settings.longitude is not None:
                location_provider = StaticLocationProvider(settings.latitude, settings.longitude)
            else:
                location_provider = NullLocationProvider()
        if interactive and environment is None:
            environment = DeviceEnvironment.detect()
        if not interactive:
            environment = None

        identity = IdentityStore(durable if interactive else None)
        fingerprints = FingerprintGenerator(environment, ephemeral, crypto)
        signer = SignatureEngine(
            secret=settings.api_secret,
            crypto=crypto,
            identity=identity,
            fingerprint=fingerprints.try_get_fingerprint,
            clock=clock,
        )
        geolocation = GeolocationAttester(
            location_provider,
            ephemeral,
            ttl=settings.geo_ttl,
            timeout=settings.geo_timeout,
            clock=clock,
        )
        host = urlsplit(settings.base_url).hostname or "localhost"
        sessions = SessionStore(
            durable,
            cookies=AuthCookieJar(host, path=cookie_path, clock=clock),
            secrets=secrets,
            timeout=settings.session_timeout,
            clock=clock,
        )
        invalidator = SessionInvalidator(sessions, bus)
        watcher = SessionWatcher(
            sessions,
            invalidator,
            bus,
            interval=settings.session_check_interval,
            warning=settings.session_warning,
        )
        return cls(
            settings=settings,
            crypto=crypto,
            bus=bus,
            durable=durable,
            ephemeral=ephemeral,
            environment=environment,
            identity=identity,
            fingerprints=fingerprints,
            signer=signer,
            geolocation=geolocation,
            sessions=sessions,
            invalidator=invalidator,
            watcher=watcher,
            interactive=interactive,
        )

    # ---------- capability flags -----------------------------------------
    @property
    def crypto_backend(self) -> str:
        return self.crypto.name

    @property
    def crypto_degraded(self) -> bool:
        return not self.crypto.strong

    # ---------- lifecycle ------------------------------------------------
    async def start(self) -> None:
        if self.interactive:
            await self.geolocation.start()
        await self.watcher.start()
        if not self._unsubscribe:
            self._unsubscribe.append(self.bus.subscribe(const.TOPIC_APP_FOREGROUND, self._on_foreground))

    async def stop(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()
        await self.watcher.stop()
        await self.geolocation.stop()

    async def aclose(self) -> None:
        await self.stop()
        self.geolocation.clear()
        self.ephemeral.clear()

    async def __aenter__(self) -> "AttestationContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _on_foreground(self, event: Event) -> None:
        self.geolocation.notify_foreground()

    def session_started(self) -> None:
        self.invalidator.rearm()

    # ---------- header material ------------------------------------------
    async def device_metadata_headers(self) -> dict[str, str]:
        headers = {const.H_DEVICE_ID: self.identity.get_device_id()}
        fingerprint = await self.fingerprints.try_get_fingerprint()
        if fingerprint:
            headers[const.H_FINGERPRINT] = fingerprint

        env = self.environment
        if env is not None:
            ua = env.user_agent
            headers[const.H_DEVICE_NAME] = self.settings.device_name or device_info.device_name(ua)
            headers[const.H_DEVICE_MODEL] = device_info.device_model(ua)
            headers[const.H_PLATFORM] = self.settings.platform
            headers[const.H_OS_NAME] = device_info.os_name(ua)
            os_version = device_info.os_version(ua)
            if os_version:
                headers[const.H_OS_VERSION] = os_version
            headers[const.H_APP_VERSION] = self.settings.app_version

        position = self.geolocation.current()
        if position is not None:
            headers[const.H_LATITUDE] = str(position.lat)
            headers[const.H_LONGITUDE] = str(position.lng)
        return headers

    async def security_envelope(self, body: Body | None = None) -> SecurityEnvelope:
        return await self.signer.build_security_envelope(body)
