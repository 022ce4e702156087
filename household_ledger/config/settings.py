"""
Ledger Configuration

Every tunable of the ledger core is read here, from environment
variables or a local .env file, through pydantic-settings.

Groups:
- GOOGLE_SHEETS_*  where the row log and the audit trail live
- LEDGER_*         how rows are folded (holders, rollup size, legacy cutoff)
- APP_*            runtime flags
"""

import re
import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"


class GoogleSheetsSettings(BaseSettings):
    """Location of the ledger spreadsheet and the service account used to reach it."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file (JSON)"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet holding the ledger tab"
    )
    ledger_sheet_name: str = Field(
        default="시트1",
        description="Tab with the [period, category, name, amount, detail] rows"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Tab receiving one row per audit event"
    )
    ledger_range: str = Field(
        default="A:E",
        description="A1 range covering the five ledger columns"
    )

    @field_validator('credentials_path')
    @classmethod
    def warn_on_missing_key_file(cls, v: str) -> str:
        """A missing key file is only a warning; it may be mounted after startup."""
        if not Path(v).exists():
            warnings.warn(f"Service account key not found at {v}; connecting will fail until it exists.")
        return v


class LedgerSettings(BaseSettings):
    """Ledger folding configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore"
    )

    account_holders: str = Field(
        default="재호,향화",
        description="Comma-separated person tags used to split balances and investment accounts"
    )
    rollup_top_n: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many entries the category expense rollup keeps"
    )
    legacy_cutoff: str = Field(
        default="2025.09",
        description="Last period (YYYY.MM) of the read-only legacy data"
    )

    @field_validator('legacy_cutoff')
    @classmethod
    def validate_legacy_cutoff(cls, v: str) -> str:
        """Cutoff must be a YYYY.MM period."""
        if not re.fullmatch(r"\d{4}\.(0[1-9]|1[0-2])", v):
            raise ValueError(f"legacy_cutoff must look like YYYY.MM, got {v!r}")
        return v

    @property
    def holders_list(self) -> list[str]:
        """Get account holders as a list."""
        return [h.strip() for h in self.account_holders.split(",") if h.strip()]


class AppSettings(BaseSettings):
    """Runtime flags of the host process."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: str = Field(
        default="development",
        description="Deployment name, e.g. development or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level, including skipped and defaulted rows"
    )


class Settings:
    """
    Entry point to all setting groups.

    Each group is built on access, so a process that never touches
    Google Sheets does not need its variables set.
    """

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings; get_settings.cache_clear() forces a re-read."""
    return Settings()


_GROUPS = ("google_sheets", "ledger", "app")


def validate_all_settings() -> dict[str, bool]:
    """
    Try to build every setting group.

    Returns {group: ok}, plus "{group}_error" with the validation
    message for each group that failed. Nothing is raised.
    """
    settings = get_settings()
    results: dict = {}
    for group in _GROUPS:
        try:
            getattr(settings, group)
        except ValidationError as e:
            results[group] = False
            results[f"{group}_error"] = str(e)
        else:
            results[group] = True
    return results
