"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vaada.services.fitness.config import FitnessConfig
from vaada.services.ledger.config import LedgerConfig

logger = logging.getLogger(__name__)


class PipelineSection(BaseModel):
    """Settlement run limits."""

    time_budget_seconds: int = 240
    stuck_after_hours: int = 48
    log_reports: bool = True


class SchedulerSection(BaseModel):
    """Job scheduling intervals in minutes."""

    settlement_interval_minutes: int = 15


class TelegramSection(BaseModel):
    """Telegram alert toggles."""

    send_stuck_alerts: bool = True
    send_run_failures: bool = True
    send_settlement_summaries: bool = False


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Secrets
    verifier_private_key: str = ""
    strava_client_id: str = ""
    strava_client_secret: str = ""
    fitbit_client_id: str = ""
    fitbit_client_secret: str = ""
    logfire_token: str = ""

    # Telegram
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # Nested configuration sections
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    providers: FitnessConfig = Field(default_factory=FitnessConfig)
    pipeline: PipelineSection = Field(default_factory=PipelineSection)
    scheduler: SchedulerSection = Field(default_factory=SchedulerSection)
    telegram: TelegramSection = Field(default_factory=TelegramSection)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m vaada init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in [
                "ledger",
                "providers",
                "pipeline",
                "scheduler",
                "telegram",
            ]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
