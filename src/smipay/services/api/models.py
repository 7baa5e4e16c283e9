# services/api/models.py
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthTokens(BaseModel):
    """Token fields of the ``data`` block of a successful sign-in or registration.

    The ``user`` record is stored as sent and is not validated here.
    """
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[float] = None
