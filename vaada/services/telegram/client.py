"""Telegram alert client."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Any

from telegram import Bot
from telegram.error import InvalidToken, RetryAfter, TelegramError

from .config import TelegramConfig
from .exceptions import TelegramAlertError, TelegramAuthError, TelegramConfigError
from .models import AlertResult

logger = logging.getLogger(__name__)


class TelegramAlertClient:
    """Async client that posts operator alerts to a single chat."""

    def __init__(self, config: TelegramConfig):
        if not config.bot_token:
            raise TelegramConfigError("bot_token is required")
        if not config.chat_id:
            raise TelegramConfigError("chat_id is required")
        self.config = config
        self._bot: Bot | None = None

    async def __aenter__(self) -> TelegramAlertClient:
        try:
            self._bot = Bot(token=self.config.bot_token)
            await self._bot.initialize()
        except InvalidToken as e:
            self._bot = None
            raise TelegramAuthError(f"Invalid bot token: {e}")
        except TelegramError as e:
            self._bot = None
            raise TelegramAlertError(f"Could not reach Telegram: {e}")
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._bot:
            try:
                await self._bot.shutdown()
            except TelegramError as e:
                logger.warning(f"Telegram bot shutdown failed: {e}")
            finally:
                self._bot = None

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError(
                "TelegramAlertClient must be used as async context manager"
            )
        return self._bot

    async def send(self, text: str) -> AlertResult:
        """Send ``text``; a failed delivery is returned, never raised."""
        last_error = "Message send failed"
        attempts = 0

        for attempt in range(1, self.config.max_attempts + 1):
            attempts = attempt
            try:
                message = await self.bot.send_message(
                    chat_id=self.config.chat_id,
                    text=text,
                    parse_mode=self.config.parse_mode,
                )
                logger.info(
                    f"Alert sent to {self.config.chat_id} "
                    f"(message_id: {message.message_id})"
                )
                return AlertResult(
                    delivered=True,
                    message_id=message.message_id,
                    chat_id=self.config.chat_id,
                    attempts=attempt,
                )

            except RetryAfter as e:
                last_error = f"Rate limited, retry after {e.retry_after}s"
                retry_after = e.retry_after
                if isinstance(retry_after, timedelta):
                    delay = retry_after.total_seconds()
                else:
                    delay = float(retry_after)
            except TelegramError as e:
                last_error = e.message or "Telegram error"
                delay = self.config.retry_delay_seconds

            logger.warning(
                f"Telegram alert failed (attempt {attempt}/{self.config.max_attempts}): "
                f"{last_error}"
            )
            if attempt < self.config.max_attempts:
                await asyncio.sleep(delay)

        return AlertResult(
            delivered=False,
            chat_id=self.config.chat_id,
            error=last_error,
            attempts=attempts,
        )
