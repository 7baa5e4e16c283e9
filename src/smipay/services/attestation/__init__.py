"""Device identity, fingerprinting, request signing and location attestation."""
from .context import AttestationContext
from .crypto import (
    CryptoCapability,
    CryptographyCapability,
    CryptoUnavailableError,
    HashlibCapability,
    WeakHashCapability,
    detect_crypto,
)
from .device import DeviceEnvironment
from .fingerprint import FingerprintGenerator
from .geolocation import (
    CallbackLocationProvider,
    GeolocationAttester,
    LocationPermissionDenied,
    LocationProvider,
    LocationUnavailable,
    NullLocationProvider,
    StaticLocationProvider,
)
from .identity import IdentityStore
from .signing import SignatureEngine, canonical_body, canonical_json, generate_nonce, generate_request_id

__all__ = [
    "AttestationContext",
    "CryptoCapability",
    "CryptographyCapability",
    "CryptoUnavailableError",
    "HashlibCapability",
    "WeakHashCapability",
    "detect_crypto",
    "DeviceEnvironment",
    "FingerprintGenerator",
    "CallbackLocationProvider",
    "GeolocationAttester",
    "LocationPermissionDenied",
    "LocationProvider",
    "LocationUnavailable",
    "NullLocationProvider",
    "StaticLocationProvider",
    "IdentityStore",
    "SignatureEngine",
    "canonical_body",
    "canonical_json",
    "generate_nonce",
    "generate_request_id",
]
