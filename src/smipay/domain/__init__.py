from .types import (
    DeviceFingerprint,
    DeviceIdentity,
    Event,
    GeoPosition,
    SecurityEnvelope,
    Session,
    SessionTerminated,
)

__all__ = [
    "DeviceFingerprint",
    "DeviceIdentity",
    "Event",
    "GeoPosition",
    "SecurityEnvelope",
    "Session",
    "SessionTerminated",
]
