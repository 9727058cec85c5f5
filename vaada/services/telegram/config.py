"""Telegram alert config."""

from pydantic import BaseModel


class TelegramConfig(BaseModel):
    """Telegram config."""

    bot_token: str = ""
    chat_id: str = ""
    max_attempts: int = 2
    retry_delay_seconds: float = 2.0
    parse_mode: str = "HTML"
