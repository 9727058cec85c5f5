"""Tests for the pipeline runner."""

import asyncio
from datetime import timedelta

from tests.fakes import NOW, InMemoryLedger, ScriptedAdapter, achieved, make_goal, unavailable
from vaada.config import PipelineSection, Settings
from vaada.pipeline import backfill_receipts, run_pipeline
from vaada.settlement.phase import GoalPhase

ALICE = "0x00000000000000000000000000000000000000a1"
BOB = "0x00000000000000000000000000000000000000b2"


def _settings(**pipeline) -> Settings:
    return Settings(pipeline=PipelineSection(**pipeline))


def _run(ledger, adapter, settings=None, now=NOW, **kwargs):
    return asyncio.run(
        run_pipeline(ledger, adapter, settings or _settings(), now=now, **kwargs)
    )


def test_skips_goals_that_are_not_due() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(1, deadline=NOW + timedelta(days=3)), {ALICE: 100})
    ledger.add_goal(make_goal(2, deadline=NOW + timedelta(days=10)), {ALICE: 100})
    ledger.add_goal(make_goal(3, active=False), {ALICE: 100})
    adapter = ScriptedAdapter({ALICE: [achieved(20_000)]})

    report = _run(ledger, adapter)

    assert report.goals_seen == 3
    assert report.goals_skipped == 3
    assert report.goals == []
    assert adapter.calls == []
    assert ledger.writes == []


def test_full_pass_verifies_settles_and_mints() -> None:
    ledger = InMemoryLedger()
    goal = ledger.add_goal(make_goal(), {ALICE: 100, BOB: 100})
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [achieved(4_000)]})

    report = _run(ledger, adapter)

    [goal_report] = report.goals
    assert goal_report.phase is GoalPhase.AWAITING_SETTLEMENT
    assert goal_report.count("verified") == 2
    assert goal_report.settlement.status == "settled"
    assert goal_report.minting.minted == 2
    assert [name for name, _ in ledger.writes] == ["verify", "verify", "settle", "mint"]
    assert report.finished_at is not None
    assert report.ok


def test_settled_goal_is_only_revisited_for_missing_receipts() -> None:
    ledger = InMemoryLedger()
    goal = ledger.add_goal(make_goal(), {ALICE: 100})
    _run(ledger, ScriptedAdapter({ALICE: [achieved(12_000)]}))
    ledger.receipts.clear()
    adapter = ScriptedAdapter({})

    report = _run(ledger, adapter)

    [goal_report] = report.goals
    assert goal_report.phase is GoalPhase.SETTLED
    assert goal_report.participants == []
    assert goal_report.minting.minted == 1
    assert adapter.calls == []

    # Settled and fully receipted: nothing left to do
    third = _run(ledger, adapter)
    assert third.goals == []
    assert third.goals_complete == 1
    assert ledger.writes_of("mint") == [goal.id, goal.id]


def test_ledger_outage_on_one_goal_does_not_abort_others() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(1), {ALICE: 100})
    ledger.add_goal(make_goal(2), {BOB: 100})
    ledger.unavailable_goals.add(1)
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [achieved(12_000)]})

    report = _run(ledger, adapter)

    first, second = report.goals
    assert "RPC timeout" in first.error
    assert second.error is None
    assert second.settlement.status == "settled"
    assert not report.ok
    assert report.fatal_error is None


def test_undecodable_goal_is_recorded_and_others_settle() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(1), {ALICE: 100})
    ledger.add_goal(make_goal(2), {BOB: 100})
    ledger.goal_types[1] = 2
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [achieved(12_000)]})

    report = _run(ledger, adapter)

    first, second = report.goals
    assert first.goal_id == 1
    assert first.phase is None
    assert "unknown goal type 2" in first.error
    assert second.settlement.status == "settled"
    assert ledger.writes_of("verify") == [2]
    assert report.fatal_error is None

    backfill = asyncio.run(backfill_receipts(ledger))
    assert [g.goal_id for g in backfill.goals] == [1]
    assert backfill.goals_complete == 1


def test_goal_enumeration_failure_is_fatal() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(), {ALICE: 100})
    ledger.list_unavailable = True

    report = _run(ledger, ScriptedAdapter({}))

    assert report.fatal_error.startswith("Ledger unavailable")
    assert report.goals == []
    assert report.finished_at is not None


def test_budget_exhaustion_stops_cleanly() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(1), {ALICE: 100})
    ledger.add_goal(make_goal(2), {BOB: 100})
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [achieved(12_000)]})
    ticks = iter([0.0] + [1.0] * 5 + [100.0] * 50)

    report = _run(
        ledger, adapter, _settings(time_budget_seconds=30), clock=lambda: next(ticks)
    )

    assert report.budget_exhausted
    assert ledger.writes_of("verify") == [1]
    assert all(goal_id == 1 for _, goal_id in ledger.writes)
    assert report.fatal_error is None


def test_stuck_goal_is_reported_not_forced() -> None:
    ledger = InMemoryLedger()
    goal = ledger.add_goal(
        make_goal(deadline=NOW - timedelta(hours=72)), {ALICE: 100, BOB: 100}
    )
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [unavailable()]})

    report = _run(ledger, adapter, _settings(stuck_after_hours=48))

    assert report.stuck_goals == [goal.id]
    assert report.goals[0].settlement.status == "not_eligible"
    assert ledger.writes_of("settle") == []


def test_goal_interrupted_by_budget_is_still_reported_stuck() -> None:
    ledger = InMemoryLedger()
    goal = ledger.add_goal(
        make_goal(deadline=NOW - timedelta(hours=72)), {ALICE: 100, BOB: 100}
    )
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [achieved(12_000)]})
    ticks = iter([0.0, 1.0, 1.0] + [100.0] * 20)

    report = _run(
        ledger,
        adapter,
        _settings(time_budget_seconds=30, stuck_after_hours=48),
        clock=lambda: next(ticks),
    )

    assert report.budget_exhausted
    assert ledger.writes_of("verify") == [goal.id]
    assert report.stuck_goals == [goal.id]
    assert [g.goal_id for g in report.goals] == [goal.id]


def test_goal_ids_limit_the_run() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(1), {ALICE: 100})
    ledger.add_goal(make_goal(2), {BOB: 100})
    adapter = ScriptedAdapter({ALICE: [achieved(12_000)], BOB: [achieved(12_000)]})

    report = _run(ledger, adapter, goal_ids=[2])

    assert [g.goal_id for g in report.goals] == [2]
    assert [subject for subject, *_ in adapter.calls] == [BOB]


def test_receipt_backfill_covers_settled_goals_only() -> None:
    ledger = InMemoryLedger()
    ledger.add_goal(make_goal(1), {ALICE: 100})
    ledger.add_goal(make_goal(2), {BOB: 100})
    _run(ledger, ScriptedAdapter({ALICE: [achieved(12_000)]}), goal_ids=[1])
    ledger.receipts.clear()

    dry = asyncio.run(backfill_receipts(ledger, dry_run=True))
    assert [g.goal_id for g in dry.goals] == [1]
    assert dry.goals[0].minting.status == "dry_run"
    assert ledger.receipts == {}

    report = asyncio.run(backfill_receipts(ledger))
    assert report.goals_skipped == 1
    assert report.goals[0].minting.minted == 1
    assert (1, ALICE) in ledger.receipts
