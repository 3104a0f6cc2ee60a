"""Unit tests for configuration management."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from boarddb.config import Environment, PostSort, Settings, get_settings


@pytest.fixture
def env(monkeypatch, tmp_path):
    """Isolated environment with a temporary data directory."""
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    monkeypatch.setenv("ENVIRONMENT", "development")
    return monkeypatch


class TestEnumClasses:
    """Tests for configuration enums."""

    def test_post_sort_values(self):
        """Test PostSort string values."""
        assert PostSort.LATEST == "LATEST"
        assert PostSort.LIKES == "LIKES"
        assert PostSort.VIEWS == "VIEWS"

    def test_environment_values(self):
        """Test Environment lookup by value."""
        assert Environment("testing") is Environment.TESTING
        assert Environment.PRODUCTION == "production"


class TestSettings:
    """Tests for Settings class."""

    def test_defaults(self, env, tmp_path):
        """Test defaults in the development profile."""
        settings = Settings()  # type: ignore[call-arg]

        assert settings.is_development
        assert settings.data_dir == tmp_path.resolve()
        assert settings.database_path == tmp_path.resolve() / "board.db"
        assert settings.database_url == f"sqlite:///{tmp_path.resolve() / 'board.db'}"
        assert settings.default_page_size == 10
        assert settings.max_page_size == 100
        assert settings.log_level == "DEBUG"
        assert settings.log_file == tmp_path.resolve() / "boarddb.log"

    def test_database_path(self, env):
        """Test DATABASE_PATH sets the SQLite file."""
        env.setenv("DATABASE_PATH", "/tmp/test.db")

        settings = Settings()  # type: ignore[call-arg]

        assert isinstance(settings.database_path, Path)
        assert settings.database_url == "sqlite:////tmp/test.db"

    def test_database_url_override(self, env):
        """Test DATABASE_URL takes precedence over the path."""
        env.setenv("DATABASE_URL", "postgresql://board:pw@localhost/board")

        settings = Settings()  # type: ignore[call-arg]

        assert settings.database_url == "postgresql://board:pw@localhost/board"

    def test_page_size_bounds(self, env):
        """Test page sizes below one are rejected."""
        env.setenv("DEFAULT_PAGE_SIZE", "0")
        with pytest.raises(ValidationError):
            Settings()  # type: ignore[call-arg]

        env.setenv("DEFAULT_PAGE_SIZE", "101")
        with pytest.raises(ValidationError):
            Settings()  # type: ignore[call-arg]

    def test_default_page_size_capped(self, env):
        """Test the default page size is capped at the maximum."""
        env.setenv("DEFAULT_PAGE_SIZE", "50")
        env.setenv("MAX_PAGE_SIZE", "20")

        assert Settings().default_page_size == 20  # type: ignore[call-arg]

    def test_invalid_log_level(self, env):
        """Test unknown log levels are rejected."""
        env.setenv("LOG_LEVEL", "chatty")

        with pytest.raises(ValidationError):
            Settings()  # type: ignore[call-arg]


class TestEnvironmentProfiles:
    """Tests for environment-specific adjustments."""

    def test_testing_profile(self, env):
        """Test the testing profile uses an in-memory database."""
        env.setenv("ENVIRONMENT", "testing")

        settings = Settings()  # type: ignore[call-arg]

        assert settings.is_testing
        assert settings.database_url == "sqlite://"
        assert settings.log_level == "ERROR"
        assert settings.log_file is None
        assert settings.bcrypt_rounds == 4

    def test_production_profile(self, env):
        """Test the production profile forces JSON logs and INFO level."""
        env.setenv("ENVIRONMENT", "production")
        env.setenv("LOG_LEVEL", "debug")
        env.setenv("SQL_ECHO", "true")

        settings = Settings()  # type: ignore[call-arg]

        assert settings.is_production
        assert settings.log_level == "INFO"
        assert settings.log_json is True
        assert settings.sql_echo is False

    def test_staging_profile(self, env):
        """Test the staging profile emits JSON logs."""
        env.setenv("ENVIRONMENT", "staging")

        settings = Settings()  # type: ignore[call-arg]

        assert settings.is_staging
        assert settings.log_json is True

    def test_get_settings(self, env):
        """Test get_settings returns a Settings instance."""
        assert isinstance(get_settings(), Settings)
