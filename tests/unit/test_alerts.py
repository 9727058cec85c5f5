"""Tests for Telegram alert formatting and delivery."""

import asyncio
from types import SimpleNamespace

import pytest
from telegram import Bot
from telegram.error import NetworkError

from vaada.config import Settings
from vaada.pipeline import send_run_alerts
from vaada.services.telegram import (
    TelegramAlertClient,
    TelegramAlertError,
    TelegramConfig,
    TelegramConfigError,
    format_failure_alert,
    format_stuck_alert,
)
from vaada.settlement.phase import GoalPhase
from vaada.settlement.report import GoalReport, RunReport, SettlementOutcome


class FakeBot:
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.sent: list[dict] = []

    async def send_message(self, **kwargs):
        if self.failures:
            self.failures -= 1
            raise NetworkError("connection reset")
        self.sent.append(kwargs)
        return SimpleNamespace(message_id=len(self.sent))


def _client(bot: FakeBot, attempts: int = 2) -> TelegramAlertClient:
    client = TelegramAlertClient(
        TelegramConfig(
            bot_token="123:abc",
            chat_id="42",
            max_attempts=attempts,
            retry_delay_seconds=0,
        )
    )
    client._bot = bot
    return client


def test_stuck_alert_lists_goals_and_escapes_names() -> None:
    report = RunReport(
        goals=[
            GoalReport(
                goal_id=9,
                name="<b>Run</b> & walk",
                phase=GoalPhase.AWAITING_SETTLEMENT,
                settlement=SettlementOutcome(status="not_eligible", unverified=["0xa"]),
            )
        ],
        stuck_goals=[9],
    )

    message = format_stuck_alert(report)

    assert "#9" in message
    assert "&lt;b&gt;Run&lt;/b&gt; &amp; walk: 1 unverified" in message
    assert report.run_id in message


def test_failure_alert_includes_error() -> None:
    report = RunReport(fatal_error="Ledger unavailable: goalCount failed")

    assert "goalCount failed" in format_failure_alert(report)


def test_send_retries_once_then_delivers() -> None:
    bot = FakeBot(failures=1)

    result = asyncio.run(_client(bot).send("hello"))

    assert result.delivered
    assert result.attempts == 2
    assert bot.sent[0]["parse_mode"] == "HTML"


def test_send_reports_failure_without_raising() -> None:
    result = asyncio.run(_client(FakeBot(failures=5)).send("hello"))

    assert not result.delivered
    assert "connection reset" in result.error


def test_client_requires_chat_id() -> None:
    with pytest.raises(TelegramConfigError):
        TelegramAlertClient(TelegramConfig(bot_token="123:abc"))


def test_alerts_skipped_when_telegram_not_configured() -> None:
    settings = Settings(_env_file=None)
    report = RunReport(fatal_error="boom", stuck_goals=[1])

    asyncio.run(send_run_alerts(report, settings))


def test_unreachable_telegram_does_not_fail_the_run(monkeypatch) -> None:
    async def unreachable(self):
        raise NetworkError("dns failure")

    monkeypatch.setattr(Bot, "initialize", unreachable)
    settings = Settings(
        _env_file=None, telegram_bot_token="123:abc", telegram_chat_id="42"
    )

    asyncio.run(send_run_alerts(RunReport(fatal_error="boom"), settings))


def test_unreachable_telegram_raises_alert_error(monkeypatch) -> None:
    async def unreachable(self):
        raise NetworkError("dns failure")

    monkeypatch.setattr(Bot, "initialize", unreachable)
    client = TelegramAlertClient(TelegramConfig(bot_token="123:abc", chat_id="42"))

    async def run():
        async with client:
            pass

    with pytest.raises(TelegramAlertError, match="dns failure"):
        asyncio.run(run())
    assert client._bot is None
