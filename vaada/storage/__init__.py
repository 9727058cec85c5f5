"""Storage layer for Vaada - file-based credentials and run report logs.

This package provides:
- Credential storage (provider refresh tokens in data/credentials.yaml)
- Run report logging (one JSON line per settlement run)

All writes are atomic or append-only so a crash never corrupts existing data.
"""

from .credentials import (
    CredentialFile,
    CredentialStore,
    ProviderCredential,
    get_credential_store,
)
from .reports import log_run_report, read_run_reports

__all__ = [
    "CredentialFile",
    "CredentialStore",
    "ProviderCredential",
    "get_credential_store",
    "log_run_report",
    "read_run_reports",
]
