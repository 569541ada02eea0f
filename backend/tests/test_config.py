"""
Tests for application configuration.
"""

import os
from unittest.mock import patch

import pytest


class TestAppModeEnum:
    """Tests for AppMode enum."""

    def test_app_mode_values(self):
        """Test AppMode enum has correct values."""
        from config import AppMode

        assert AppMode.DEV.value == "dev"
        assert AppMode.PROD.value == "prod"


class TestSettingsDefaults:
    """Tests for Settings default values."""

    def test_defaults(self):
        """Test model and retry defaults."""
        with patch.dict(os.environ, {}, clear=True):
            from config import AppMode, Settings

            settings = Settings(_env_file=None)
            assert settings.APP_MODE == AppMode.DEV
            assert settings.IMAGE_ASPECT_RATIO == "4:3"
            assert settings.IMAGE_SIZE == "4K"
            assert settings.RETRY_MAX_ATTEMPTS == 3
            assert settings.RETRY_INITIAL_DELAY_MS == 2000
            assert settings.EXPORT_FOLDER_NAME == "MockupStudio_Package"

    def test_ai_not_configured_without_key(self):
        """Test a blank key disables generation."""
        with patch.dict(os.environ, {"GOOGLE_API_KEY": "   "}, clear=True):
            from config import Settings

            assert Settings(_env_file=None).ai_configured is False

    def test_ai_configured_from_environment(self):
        with patch.dict(os.environ, {"GOOGLE_API_KEY": "AIza-test"}, clear=True):
            from config import Settings

            assert Settings(_env_file=None).ai_configured is True

    def test_max_upload_size_bytes(self):
        from config import Settings

        assert Settings(_env_file=None, MAX_UPLOAD_SIZE_MB=2).max_upload_size_bytes == 2 * 1024 * 1024


class TestCorsOrigins:
    """Tests for CORS origin resolution."""

    def test_dev_includes_localhost(self):
        from config import AppMode, Settings

        settings = Settings(_env_file=None, APP_MODE=AppMode.DEV)
        assert "http://localhost:5173" in settings.CORS_ORIGINS

    def test_prod_only_explicit_origins(self):
        from config import AppMode, Settings

        settings = Settings(
            _env_file=None,
            APP_MODE=AppMode.PROD,
            CORS_ALLOWED_ORIGINS="https://studio.example.com, https://cdn.example.com",
        )
        assert settings.CORS_ORIGINS == [
            "https://studio.example.com",
            "https://cdn.example.com",
        ]


class TestValidateSettings:
    """Tests for settings validation."""

    def test_debug_in_production_is_fatal(self):
        from config import AppMode, Settings, _validate_settings

        with pytest.raises(ValueError, match="DEBUG=True in production"):
            _validate_settings(Settings(_env_file=None, APP_MODE=AppMode.PROD, DEBUG=True))

    def test_missing_key_in_production_only_warns(self):
        from config import AppMode, Settings, _validate_settings

        settings = Settings(_env_file=None, APP_MODE=AppMode.PROD, GOOGLE_API_KEY="")
        assert _validate_settings(settings) is settings

    def test_invalid_retry_policy(self):
        from config import Settings, _validate_settings

        with pytest.raises(ValueError, match="RETRY_MAX_ATTEMPTS"):
            _validate_settings(Settings(_env_file=None, RETRY_MAX_ATTEMPTS=0))
