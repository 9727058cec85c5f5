"""HTML alert bodies for settlement runs."""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vaada.settlement.report import RunReport


def format_stuck_alert(report: RunReport) -> str:
    goals = ", ".join(f"#{goal_id}" for goal_id in report.stuck_goals)
    lines = [
        "<b>⚠️ Goals stuck awaiting settlement</b>",
        f"Goals: {goals}",
    ]
    for goal in report.goals:
        if goal.goal_id in report.stuck_goals and goal.settlement:
            unverified = len(goal.settlement.unverified)
            lines.append(f"#{goal.goal_id} {escape(goal.name)}: {unverified} unverified")
    lines.append(f"Run <code>{report.run_id}</code>")
    return "\n".join(lines)


def format_failure_alert(report: RunReport) -> str:
    return "\n".join(
        [
            "<b>❌ Settlement run failed</b>",
            escape(report.fatal_error or "unknown error"),
            f"Run <code>{report.run_id}</code>",
        ]
    )


def format_summary(report: RunReport) -> str:
    return "\n".join(
        [
            "<b>Settlement run complete</b>",
            escape(report.summary()),
            f"Run <code>{report.run_id}</code>",
        ]
    )
