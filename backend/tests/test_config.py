# tests/test_config.py
"""
Tests for Settings validation.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from portfolio_tracker.config import Settings


class TestDatabaseConfig:
    """Tests for the environment-dependent database rules."""

    def test_test_environment_defaults_to_sqlite(self):
        settings = Settings(environment="test", database_url=None)

        assert settings.database_url == "sqlite:///:memory:"
        assert settings.is_sqlite
        assert settings.is_test

    def test_development_requires_database_url(self):
        with pytest.raises(ValidationError, match="DATABASE_URL is required"):
            Settings(environment="development", database_url=None)

    def test_production_rejects_sqlite(self):
        with pytest.raises(ValidationError, match="server database"):
            Settings(environment="production", database_url="sqlite:///portfolio.db")

    def test_production_with_server_database(self):
        settings = Settings(
            environment="production",
            database_url="postgresql://user:secret@db:5432/portfolio",
        )

        assert settings.is_production
        assert not settings.is_sqlite


class TestEngineThresholds:
    """Tests for the valuation thresholds."""

    def test_defaults(self):
        settings = Settings(environment="test")

        assert settings.quantity_epsilon == Decimal("0.0001")
        assert settings.aggregation_epsilon == Decimal("0.01")

    def test_quantity_epsilon_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(environment="test", quantity_epsilon=Decimal("0"))

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            Settings(environment="test", log_format="xml")
