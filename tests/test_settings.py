# mypy: ignore-errors
"""Tests for settings resolution."""

from sugarpot.core.settings import Settings


def test_effective_database_url_defaults_to_database_url():
    config = Settings(SECRET_KEY="k", DATABASE_URL="postgresql+psycopg://db/sugarpot")
    assert config.effective_database_url == "postgresql+psycopg://db/sugarpot"


def test_effective_database_url_prefers_test_database():
    config = Settings(
        SECRET_KEY="k",
        DATABASE_URL="sqlite:///./sugarpot.db",
        TEST_DATABASE_URL="sqlite://",
        USE_TEST_DATABASE=True,
    )
    assert config.effective_database_url == "sqlite://"


def test_test_database_ignored_unless_enabled():
    config = Settings(
        SECRET_KEY="k",
        DATABASE_URL="sqlite:///./sugarpot.db",
        TEST_DATABASE_URL="sqlite://",
        USE_TEST_DATABASE=False,
    )
    assert config.effective_database_url == "sqlite:///./sugarpot.db"


def test_single_database_url_property():
    """Engine and migrations share one URL; there is no driver-rewriting variant."""
    assert not hasattr(Settings, "database_url_sync")
