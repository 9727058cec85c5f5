"""Fitness provider verification."""

from .adapter import PROVIDERS, VerificationAdapter
from .client import FitnessHttpClient
from .config import FitnessConfig
from .exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderNotConnectedError,
    ProviderRateLimitError,
)
from .models import Achieved, Measurement, ProviderKind, Unavailable, VerificationResult

__all__ = [
    "VerificationAdapter",
    "PROVIDERS",
    "FitnessHttpClient",
    "FitnessConfig",
    "ProviderError",
    "ProviderAuthError",
    "ProviderNotConnectedError",
    "ProviderRateLimitError",
    "Achieved",
    "Measurement",
    "ProviderKind",
    "Unavailable",
    "VerificationResult",
]
