"""Structural interface the settlement pipeline consumes.

``LedgerClient`` implements it against the deployed contracts; tests drive the
pipeline with an in-memory implementation.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import Goal, Participant, ReceiptEntry


class Ledger(Protocol):
    async def list_goal_ids(self) -> list[int]: ...

    async def get_goal(self, goal_id: int) -> Goal: ...

    async def get_participants(self, goal_id: int) -> list[str]: ...

    async def get_participant(self, goal_id: int, user: str) -> Participant: ...

    async def has_receipt(self, goal_id: int, user: str) -> bool: ...

    async def submit_verification(
        self, goal_id: int, user: str, achieved_value: int
    ) -> str: ...

    async def submit_settlement(self, goal_id: int) -> str: ...

    async def submit_receipt_batch(self, entries: Sequence[ReceiptEntry]) -> str: ...
