"""Telegram service exceptions."""


class TelegramAlertError(Exception):
    """Base Telegram exception."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TelegramAuthError(TelegramAlertError):
    """Bot token rejected."""

    pass


class TelegramConfigError(TelegramAlertError):
    """Missing bot token or chat id."""

    pass
