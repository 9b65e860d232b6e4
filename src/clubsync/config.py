"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.clubsync.sync.schemas import Location, MatchRule, RecordKind, SyncConfig


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Complex values (LOCATIONS, TARGET_CATEGORIES, CATEGORY_TAGS, RECORD_KINDS)
    are read as JSON by pydantic-settings.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Business day boundary (local midnight) is evaluated in this zone
    TIMEZONE: str = "America/New_York"

    # ABC Financial (system of record)
    ABC_API_BASE: str = "https://api.abcfinancial.com/rest"
    ABC_APP_ID: str = ""
    ABC_APP_KEY: str = ""

    # LeadConnector / HighLevel (CRM)
    GHL_API_BASE: str = "https://services.leadconnectorhq.com"
    GHL_API_VERSION: str = "2021-07-28"

    # Location mapping: ABC club number -> CRM location id and token
    LOCATIONS: list[Location] = []

    # Matching rules
    TARGET_CATEGORIES: list[str] = ["Non-Member Program", "PHYSICAL THERAPY"]
    CATEGORY_TAGS: dict[str, str] = {
        "PHYSICAL THERAPY": "NLPT",
        "Non-Member Program": "Non Member Program",
    }
    FAST_ADD_ENTRY_SOURCE: str = "DataTrak Fast Add"
    FAST_ADD_REPORT_NAME: str = "Fast Add"

    # CRM custom field holding the ABC member id
    SOURCE_ID_FIELD_KEY: str = "abc_member_id"

    # Scheduling and pacing (60s poll interval keeps us under CRM rate limits)
    RECORD_KINDS: list[RecordKind] = [RecordKind.PROSPECT]
    POLL_INTERVAL_SECONDS: int = 60
    INTER_RECORD_DELAY_SECONDS: float = 0.2
    INTER_LOCATION_DELAY_SECONDS: float = 2.0
    RUN_ON_STARTUP: bool = True

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Monitoring
    SENTRY_DSN: str = ""

    @field_validator("LOCATIONS")
    @classmethod
    def _unique_source_ids(cls, value: list[Location]) -> list[Location]:
        seen: set[str] = set()
        for location in value:
            if location.source_id in seen:
                raise ValueError(f"Duplicate location source_id: {location.source_id}")
            seen.add(location.source_id)
        return value

    def match_rule(self) -> MatchRule:
        """Build the immutable prospect/transaction match rule."""
        return MatchRule(
            target_categories=frozenset(self.TARGET_CATEGORIES),
            entry_sources=frozenset({self.FAST_ADD_ENTRY_SOURCE}),
            entry_source_reports=frozenset({self.FAST_ADD_REPORT_NAME}),
        )

    def sync_config(self) -> SyncConfig:
        """Freeze the sync-relevant settings into a SyncConfig for the core."""
        return SyncConfig(
            locations=tuple(self.LOCATIONS),
            rule=self.match_rule(),
            category_tags=dict(self.CATEGORY_TAGS),
            kinds=tuple(self.RECORD_KINDS),
            timezone=self.TIMEZONE,
            poll_interval_seconds=self.POLL_INTERVAL_SECONDS,
            inter_record_delay_seconds=self.INTER_RECORD_DELAY_SECONDS,
            inter_location_delay_seconds=self.INTER_LOCATION_DELAY_SECONDS,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
