"""Tests for ledger model decoding and encoding."""

from datetime import datetime, timezone

import pytest

from vaada.services.ledger.config import LedgerConfig
from vaada.services.ledger.exceptions import LedgerDataError
from vaada.services.ledger.models import (
    Goal,
    GoalKind,
    Participant,
    ReceiptEntry,
    to_ledger_units,
)

RAW_GOAL = (
    7,
    "10k steps a day",
    10_000,
    10**15,
    10**18,
    1_767_225_600,  # 2026-01-01
    1_767_312_000,
    1_767_830_400,
    True,
    False,
    3 * 10**16,
    3,
)


def test_goal_from_chain_tuple() -> None:
    goal = Goal.from_chain(RAW_GOAL, goal_type=1)

    assert goal.id == 7
    assert goal.kind is GoalKind.STEPS
    assert goal.target == 10_000
    assert goal.start_time == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert goal.deadline.tzinfo is not None
    assert goal.active and not goal.settled
    assert goal.participant_count == 3


def test_unknown_goal_type_is_a_ledger_error() -> None:
    with pytest.raises(LedgerDataError, match="unknown goal type 2"):
        Goal.from_chain(RAW_GOAL, goal_type=2)


def test_participant_from_chain_tuple() -> None:
    participant = Participant.from_chain(
        ("0xAbC0000000000000000000000000000000000001", 10**16, 12, True, True, False)
    )

    assert participant.stake == 10**16
    assert participant.achieved == 12
    assert participant.verified and participant.succeeded
    assert not participant.claimed


def test_receipt_entry_encodes_contract_tuple() -> None:
    entry = ReceiptEntry(
        goal_id=3,
        participant="0x0000000000000000000000000000000000000002",
        kind=GoalKind.DISTANCE,
        target=10,
        achieved=15,
        stake=500,
        payout=500,
        succeeded=True,
        start_time=1_767_225_600,
        end_time=1_767_830_400,
        goal_name="Run 10 miles",
    )

    encoded = entry.to_chain()

    assert encoded[2] == 0
    assert encoded[6] == 500
    assert encoded[8:10] == (1_767_225_600, 1_767_830_400)
    assert encoded[-1] == "Run 10 miles"


def test_to_ledger_units_rounds_down() -> None:
    assert to_ledger_units(12_000, 0) == 12_000
    assert to_ledger_units(9.99, 0) == 9
    assert to_ledger_units(15.4321, 2) == 1543


def test_to_ledger_units_rejects_negative_values() -> None:
    with pytest.raises(ValueError):
        to_ledger_units(-1, 0)


def test_decimals_follow_goal_kind() -> None:
    config = LedgerConfig(distance_decimals=2, steps_decimals=0)

    assert config.decimals_for(GoalKind.DISTANCE) == 2
    assert config.decimals_for(GoalKind.STEPS) == 0
