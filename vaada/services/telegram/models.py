"""Telegram alert models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class AlertResult(BaseModel):
    """Alert delivery result."""

    delivered: bool
    message_id: int | None = None
    chat_id: str
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    error: str | None = None
    attempts: int = 1

    def __str__(self) -> str:
        if self.delivered:
            return f"Alert sent to {self.chat_id} (msg_id: {self.message_id})"
        return f"Alert to {self.chat_id} failed after {self.attempts} attempts: {self.error}"
