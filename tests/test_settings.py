"""Tests for database URL selection in settings."""

from rentstream.core.settings import Settings


def test_database_url_is_used_verbatim():
    configured = Settings(DATABASE_URL="postgresql+psycopg://app@db/rentstream", _env_file=None)

    assert configured.effective_database_url == "postgresql+psycopg://app@db/rentstream"


def test_test_database_overrides_when_enabled():
    configured = Settings(
        DATABASE_URL="sqlite:///./main.db",
        TEST_DATABASE_URL="sqlite:///./test.db",
        USE_TEST_DATABASE=True,
        _env_file=None,
    )

    assert configured.effective_database_url == "sqlite:///./test.db"


def test_test_database_ignored_when_disabled():
    configured = Settings(
        DATABASE_URL="sqlite:///./main.db",
        TEST_DATABASE_URL="sqlite:///./test.db",
        USE_TEST_DATABASE=False,
        _env_file=None,
    )

    assert configured.effective_database_url == "sqlite:///./main.db"
