"""Client-side request attestation and session handling for the SmiPay backend."""
from smipay.build_info import APP_VERSION

__version__ = APP_VERSION

__all__ = ["__version__"]
