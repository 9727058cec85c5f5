"""Pipeline-level exceptions."""


class SettlementError(Exception):
    """Base settlement pipeline exception."""

    pass


class BudgetExhausted(SettlementError):
    """The run's time budget ran out; stop cleanly before the next step."""

    def __init__(self, elapsed: float, budget: float):
        super().__init__(f"Time budget exhausted ({elapsed:.1f}s of {budget:.0f}s)")
        self.elapsed = elapsed
        self.budget = budget
