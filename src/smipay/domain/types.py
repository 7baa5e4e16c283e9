"""Value objects shared by the attestation and session layers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from smipay.config import const

__all__ = [
    "DeviceIdentity",
    "DeviceFingerprint",
    "GeoPosition",
    "SecurityEnvelope",
    "Session",
    "SessionTerminated",
    "Event",
]


@dataclass(frozen=True, slots=True)
class DeviceIdentity:
    device_id: str


@dataclass(frozen=True, slots=True)
class DeviceFingerprint:
    fingerprint: str


@dataclass(frozen=True, slots=True)
class GeoPosition:
    """A location fix; ``captured_at`` is epoch seconds."""

    lat: float
    lng: float
    captured_at: float

    def age(self, now: float) -> float:
        return now - self.captured_at

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.age(now) < ttl

    def to_cache(self) -> dict[str, Any]:
        # same shape the web client keeps in sessionStorage (timestamp in ms)
        return {"lat": self.lat, "lng": self.lng, "timestamp": int(self.captured_at * 1000)}

    @classmethod
    def from_cache(cls, data: Mapping[str, Any]) -> "GeoPosition":
        return cls(
            lat=float(data["lat"]),
            lng=float(data["lng"]),
            captured_at=float(data["timestamp"]) / 1000.0,
        )


@dataclass(frozen=True, slots=True)
class SecurityEnvelope:
    """Replay-resistant bundle attached to one outgoing request."""

    timestamp: str
    nonce: str
    signature: str
    request_id: str
    device_id: str
    fingerprint: str

    def as_headers(self) -> dict[str, str]:
        headers = {
            const.H_TIMESTAMP: self.timestamp,
            const.H_NONCE: self.nonce,
            const.H_SIGNATURE: self.signature,
            const.H_REQUEST_ID: self.request_id,
            const.H_DEVICE_ID: self.device_id,
        }
        if self.fingerprint:
            headers[const.H_FINGERPRINT] = self.fingerprint
        return headers


@dataclass(slots=True)
class Session:
    access_token: str
    cached_user: dict[str, Any] | None = None
    last_activity: float | None = None
    token_expiry: float | None = None


@dataclass(frozen=True, slots=True)
class SessionTerminated:
    """Signal for the hosting application: the local session is gone."""

    reason: str
    message: str
    expired: bool = True

    def signin_params(self) -> dict[str, str]:
        return {"expired": "true" if self.expired else "false", "message": self.message}


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Any = None
    source: str = ""
    ts: float = 0.0
    meta: dict[str, Any] = field(default_factory=dict)
