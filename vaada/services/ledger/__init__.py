from .client import LedgerClient, create_ledger_client
from .config import LedgerConfig
from .exceptions import (
    LedgerConfigError,
    LedgerDataError,
    LedgerError,
    LedgerUnavailableError,
    LedgerWriteRejected,
)
from .models import Goal, GoalKind, Participant, ReceiptEntry, to_ledger_units
from .protocol import Ledger

__all__ = [
    "LedgerClient",
    "create_ledger_client",
    "LedgerConfig",
    "Ledger",
    "LedgerError",
    "LedgerConfigError",
    "LedgerDataError",
    "LedgerUnavailableError",
    "LedgerWriteRejected",
    "Goal",
    "GoalKind",
    "Participant",
    "ReceiptEntry",
    "to_ledger_units",
]
