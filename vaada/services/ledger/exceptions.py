class LedgerError(Exception):
    """Base exception for ledger errors."""

    def __init__(self, message: str, tx_hash: str | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class LedgerUnavailableError(LedgerError):
    """RPC endpoint unreachable, timed out, or returned a transport error."""

    pass


class LedgerWriteRejected(LedgerError):
    """Contract reverted the call or the mined transaction failed."""

    pass


class LedgerConfigError(LedgerError):
    """Client is missing a signer or contract address."""

    pass


class LedgerDataError(LedgerError):
    """Contract returned a value this client cannot decode."""

    pass
