from __future__ import annotations

import time
from typing import Callable

from .errors import BudgetExhausted


class RunBudget:
    """Wall-clock allowance for one invocation, checked between steps."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._started = clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started

    def exhausted(self) -> bool:
        return self.elapsed >= self.seconds

    def check(self) -> None:
        if self.exhausted():
            raise BudgetExhausted(self.elapsed, self.seconds)

    def remaining(self) -> float:
        return max(self.seconds - self.elapsed, 0.0)
