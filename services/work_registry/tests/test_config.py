"""Tests for service configuration."""

from services.work_registry.app.config import Settings, get_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Test the default values."""
        monkeypatch.delenv("WORKREG_MERGE_MINTS_DOI", raising=False)
        settings = Settings(_env_file=None)

        assert settings.service_name == "work-registry"
        assert settings.merge_mints_doi is False
        assert settings.index_updates_enabled is True
        assert settings.database_url.startswith("postgresql+asyncpg://")

    def test_environment_prefix(self, monkeypatch):
        """Test that WORKREG_ variables override defaults."""
        monkeypatch.setenv("WORKREG_MERGE_MINTS_DOI", "true")
        monkeypatch.setenv("WORKREG_DOI_PUBLISHER", "Test Repository")

        settings = Settings(_env_file=None)

        assert settings.merge_mints_doi is True
        assert settings.doi_publisher == "Test Repository"

    def test_get_settings_is_cached(self):
        """Test that settings are created once."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
