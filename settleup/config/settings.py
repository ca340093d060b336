"""
Configuration Management for Settle Up

Settings come from environment variables (and a .env file) through
pydantic-settings, so every value is typed and checked on load.

DESIGN DECISION: The settlement engine itself takes no configuration.
Thresholds it needs (epsilon, split tolerance, currency symbol) are read
here by the callers and passed in.

Environment variables:
    GOOGLE_SHEETS_CREDENTIALS_PATH, GOOGLE_SHEETS_SPREADSHEET_ID, ...
    SETTLE_UP_CURRENCY_SYMBOL, SETTLE_UP_SETTLEMENT_EPSILON, ...
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Where the shared ledger lives in Google Sheets."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account JSON used to open the spreadsheet"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet holding expenses, friends and settlements"
    )

    # One worksheet per kind of record
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Worksheet for expenses (splits stored as JSON)"
    )
    participants_sheet_name: str = Field(
        default="Friends",
        description="Worksheet for the friends list"
    )
    settlements_sheet_name: str = Field(
        default="Settlements",
        description="Worksheet for recorded settlements"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Worksheet for the append-only audit trail"
    )

    @field_validator("credentials_path")
    @classmethod
    def warn_if_credentials_missing(cls, v: str) -> str:
        """A missing key file is only a warning; it may be mounted after startup."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Service account file {v} does not exist yet. "
                "Google Sheets storage will fail to connect until it does."
            )
        return v


class AppSettings(BaseSettings):
    """Ledger behaviour and display settings."""

    model_config = SettingsConfigDict(
        env_prefix="SETTLE_UP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: str = Field(
        default="development",
        description="Deployment environment name"
    )
    debug_mode: bool = Field(
        default=False,
        description="Verbose logging"
    )

    # Currency display
    currency_symbol: str = Field(
        default="$",
        description="Symbol prefixed to formatted amounts"
    )

    # Thresholds
    split_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="How far split totals may drift from the expense amount"
    )
    settlement_epsilon: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Balances smaller than this are treated as settled"
    )
    max_expense_amount: Decimal = Field(
        default=Decimal("100000"),
        description="Amounts above this get an 'unusually high' warning"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="How many days in the future an expense date can be"
    )


class Settings(BaseSettings):
    """
    Entry point for all settings.

    Sub-settings are built on access, so the app can run in memory
    without any Google Sheets variables set.
    """

    model_config = SettingsConfigDict(extra="ignore")

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Shared Settings instance. Use get_settings.cache_clear() in tests."""
    return Settings()


def validate_all_settings() -> dict[str, Union[bool, str]]:
    """
    Check each settings group loads.

    Returns {group: loaded_ok}, plus a "<group>_error" message for each
    group that failed. Meant for a startup health check.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
