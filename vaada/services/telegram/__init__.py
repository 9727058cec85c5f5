"""Telegram operator alerts."""

from .client import TelegramAlertClient
from .config import TelegramConfig
from .exceptions import TelegramAlertError, TelegramAuthError, TelegramConfigError
from .messages import format_failure_alert, format_stuck_alert, format_summary
from .models import AlertResult

__all__ = [
    "TelegramAlertClient",
    "TelegramConfig",
    "AlertResult",
    "TelegramAlertError",
    "TelegramAuthError",
    "TelegramConfigError",
    "format_failure_alert",
    "format_stuck_alert",
    "format_summary",
]
