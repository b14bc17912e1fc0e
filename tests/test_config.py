"""
Tests for settings loading
"""
import pytest

from removebg_service import config
from removebg_service.errors import ConfigError


@pytest.fixture(autouse=True)
def clear_settings_cache():
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


class TestSettings:
    """Environment-driven configuration"""

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("REMOVEBG_API_KEY", "from-env")
        settings = config.get_settings()

        assert settings.removebg_api_key == "from-env"
        assert settings.removebg_endpoint == "https://api.remove.bg/v1.0/removebg"
        assert settings.max_upload_bytes == 5 * 1024 * 1024
        assert settings.output_filename == "background-removed.png"
        assert settings.share_title == "Background Removed Image"
        assert settings.share_storage_configured is False

    def test_missing_api_key(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("REMOVEBG_API_KEY", raising=False)
        with pytest.raises(ConfigError):
            config.get_settings()

    def test_blank_api_key(self, monkeypatch):
        monkeypatch.setenv("REMOVEBG_API_KEY", "   ")
        with pytest.raises(ConfigError):
            config.get_settings()

    def test_non_positive_upload_limit(self, monkeypatch):
        monkeypatch.setenv("REMOVEBG_API_KEY", "k")
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "0")
        with pytest.raises(ConfigError):
            config.get_settings()
