"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from app.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start each test without any ExamCraft variables set."""
    for name in (
        "GEMINI_API_KEY",
        "MODEL_NAME",
        "DEFAULT_SUGGESTION_COUNT",
        "MAX_SUGGESTION_COUNT",
        "PDF_FONT_PATH",
        "SUGGEST_RATE_LIMIT",
        "TRUSTED_PROXIES",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Test Settings class validation and loading."""

    def test_settings_defaults(self):
        """Without any environment the service starts with AI suggestions disabled."""
        settings = Settings(_env_file=None)

        assert settings.gemini_api_key is None
        assert settings.model_name == "gemini-3-flash-preview"
        assert settings.default_suggestion_count == 1
        assert settings.max_suggestion_count == 10
        assert settings.pdf_font_path is None
        assert settings.suggest_rate_limit == "10/minute"
        assert settings.trusted_proxies is None
        assert settings.log_level == "INFO"

    def test_settings_with_valid_env_vars(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-api-key-123")
        monkeypatch.setenv("MODEL_NAME", "gemini-3-pro-preview")
        monkeypatch.setenv("MAX_SUGGESTION_COUNT", "5")

        settings = Settings(_env_file=None)

        assert settings.gemini_api_key == "test-api-key-123"
        assert settings.model_name == "gemini-3-pro-preview"
        assert settings.max_suggestion_count == 5

    def test_env_var_names_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("gemini_api_key", "lowercase-key")

        settings = Settings(_env_file=None)

        assert settings.gemini_api_key == "lowercase-key"

    def test_gemini_api_key_is_stripped(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "  padded-key  ")

        settings = Settings(_env_file=None)

        assert settings.gemini_api_key == "padded-key"

    def test_empty_gemini_api_key_raises_error(self, monkeypatch):
        """A key that is set but blank is a configuration mistake."""
        monkeypatch.setenv("GEMINI_API_KEY", "")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "GEMINI_API_KEY must not be empty" in str(exc_info.value)

    def test_whitespace_only_gemini_api_key_raises_error(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "   ")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "GEMINI_API_KEY must not be empty" in str(exc_info.value)

    @pytest.mark.parametrize("name", ["DEFAULT_SUGGESTION_COUNT", "MAX_SUGGESTION_COUNT"])
    def test_suggestion_counts_must_be_positive(self, monkeypatch, name):
        monkeypatch.setenv(name, "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_log_level_is_normalised(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", " debug ")

        assert Settings(_env_file=None).log_level == "DEBUG"

    def test_unknown_log_level_raises_error(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_unknown_env_vars_are_ignored(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://unused.example.com")

        settings = Settings(_env_file=None)

        assert not hasattr(settings, "supabase_url")


class TestGetSettings:
    """Test the cached settings accessor."""

    def test_get_settings_is_cached(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "first-key")

        first = get_settings()
        monkeypatch.setenv("GEMINI_API_KEY", "second-key")
        second = get_settings()

        assert first is second
        assert second.gemini_api_key == "first-key"

    def test_cache_clear_reloads_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "first-key")
        get_settings()

        monkeypatch.setenv("GEMINI_API_KEY", "second-key")
        get_settings.cache_clear()

        assert get_settings().gemini_api_key == "second-key"
