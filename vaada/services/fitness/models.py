from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel


class ProviderKind(str, Enum):
    STRAVA = "strava"
    FITBIT = "fitbit"


class TokenGrant(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: int | None = None


class Measurement(BaseModel):
    """Sum of device-recorded activity in the goal's native unit."""

    value: float
    records_counted: int = 0
    records_skipped: int = 0


class Achieved(BaseModel):
    status: Literal["achieved"] = "achieved"
    value: float
    provider: ProviderKind
    records_counted: int = 0


class Unavailable(BaseModel):
    status: Literal["unavailable"] = "unavailable"
    reason: str
    provider: ProviderKind | None = None


VerificationResult = Union[Achieved, Unavailable]
