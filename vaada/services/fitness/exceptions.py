"""Fitness provider exceptions."""


class ProviderError(Exception):
    """Base exception for fitness provider errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """OAuth grant revoked or token refresh failed."""

    pass


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded."""

    pass


class ProviderNotConnectedError(ProviderError):
    """Subject has no usable provider credentials."""

    pass
