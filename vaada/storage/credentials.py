"""Provider refresh-token storage with atomic writes to data/credentials.yaml."""

import logging
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from vaada.services.fitness.models import ProviderKind

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================


class ProviderCredential(BaseModel):
    """OAuth refresh token for one subject at one provider."""

    refresh_token: str
    external_id: str = ""  # Strava athlete id / Fitbit user id
    updated_at: datetime | None = None


class CredentialFile(BaseModel):
    """Complete credentials file - matches data/credentials.yaml schema."""

    last_updated: datetime | None = None
    subjects: dict[str, dict[ProviderKind, ProviderCredential]] = Field(
        default_factory=dict
    )


# ============================================================================
# Store
# ============================================================================


class CredentialStore:
    """Reads credentials fresh on every lookup; rotated tokens are saved atomically.

    Each write reloads the file, applies one change and replaces the file. There
    is no cross-process lock, so two overlapping runs rotating different
    subjects can drop one rotation. Settlement runs are kept apart by the
    scheduler's ``max_instances=1``; do not overlap a manual ``run --once`` or
    ``verify-goal`` with a scheduled run.
    """

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> CredentialFile:
        if not self.path.exists():
            logger.info(f"Credentials file not found: {self.path}. Using empty store.")
            return CredentialFile()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f)

            if not raw_data:
                return CredentialFile()

            return CredentialFile(**raw_data)

        except yaml.YAMLError as e:
            logger.error(f"Corrupted YAML in credentials file: {e}")
            raise

    def save(self, credentials: CredentialFile) -> None:
        """Atomically save via tempfile -> rename so a crash never truncates the file."""
        credentials.last_updated = datetime.now(timezone.utc)
        data = credentials.model_dump(mode="json")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                delete=False,
                suffix=".yaml",
                encoding="utf-8",
            ) as temp_file:
                yaml.dump(
                    data,
                    temp_file,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                )
                temp_path = Path(temp_file.name)

            shutil.move(str(temp_path), str(self.path))
            logger.debug(f"Saved credentials to {self.path}")

        except Exception as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to save credentials: {e}")
            raise

    def get(self, subject: str) -> dict[ProviderKind, ProviderCredential]:
        return self.load().subjects.get(subject.lower(), {})

    def put(
        self,
        subject: str,
        provider: ProviderKind,
        refresh_token: str,
        external_id: str = "",
    ) -> None:
        credentials = self.load()
        entries = credentials.subjects.setdefault(subject.lower(), {})
        existing = entries.get(provider)
        entries[provider] = ProviderCredential(
            refresh_token=refresh_token,
            external_id=external_id or (existing.external_id if existing else ""),
            updated_at=datetime.now(timezone.utc),
        )
        self.save(credentials)

    def rotate(self, subject: str, provider: ProviderKind, refresh_token: str) -> None:
        """Persist a refresh token the provider just rotated."""
        self.put(subject, provider, refresh_token)
        logger.debug(f"Rotated {provider.value} refresh token for {subject.lower()}")

    def remove(self, subject: str, provider: ProviderKind) -> bool:
        credentials = self.load()
        entries = credentials.subjects.get(subject.lower())
        if not entries or provider not in entries:
            return False
        del entries[provider]
        if not entries:
            del credentials.subjects[subject.lower()]
        self.save(credentials)
        logger.info(f"Removed {provider.value} credentials for {subject.lower()}")
        return True


def get_credential_store(data_dir: Path) -> CredentialStore:
    return CredentialStore(data_dir / "credentials.yaml")
