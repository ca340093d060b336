"""Tests for configuration loading."""

import pytest
from decimal import Decimal

from settleup.config import AppSettings, get_settings, validate_all_settings
from settleup.engine.money import format_currency


class TestSettings:
    """Tests for settings."""

    def test_app_defaults(self, monkeypatch):
        """Test default app settings."""
        monkeypatch.delenv("SETTLE_UP_CURRENCY_SYMBOL", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.currency_symbol == "$"
        assert settings.settlement_epsilon == Decimal("0.01")
        assert settings.split_tolerance == Decimal("0.01")

    def test_currency_symbol_from_environment(self, monkeypatch):
        """Test format_currency picks up the configured symbol."""
        monkeypatch.setenv("SETTLE_UP_CURRENCY_SYMBOL", "€")
        assert format_currency(Decimal("5")) == "€5.00"

    def test_get_settings_is_cached(self):
        """Test the same instance is returned."""
        assert get_settings() is get_settings()

    def test_validate_all_settings_without_sheets(self, monkeypatch):
        """Test missing Sheets configuration is reported, not raised."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        results = validate_all_settings()

        assert results["app"] is True
        assert results["google_sheets"] is False
        assert isinstance(results["google_sheets_error"], str)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
