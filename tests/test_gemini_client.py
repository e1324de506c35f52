"""Tests for Gemini API client initialization."""

import pytest
from unittest.mock import patch, MagicMock

from app.config import get_settings
from app.services.gemini_client import _client_for, get_gemini_client


@pytest.fixture(autouse=True)
def fresh_client_cache():
    _client_for.cache_clear()
    yield
    _client_for.cache_clear()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set a Gemini key and reload settings."""
    monkeypatch.setenv('GEMINI_API_KEY', 'test-gemini-api-key')
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestGeminiClient:
    """Test suite for Gemini client initialization."""

    def test_get_gemini_client_success(self, mock_env_vars):
        with patch('app.services.gemini_client.genai.Client') as mock_client:
            mock_client_instance = MagicMock()
            mock_client.return_value = mock_client_instance

            client = get_gemini_client()

            mock_client.assert_called_once_with(api_key='test-gemini-api-key')
            assert client == mock_client_instance

    def test_client_reused_for_same_key(self, mock_env_vars):
        with patch('app.services.gemini_client.genai.Client') as mock_client:
            first = get_gemini_client()
            second = get_gemini_client()

        assert first is second
        mock_client.assert_called_once()

    def test_new_client_when_key_changes(self, mock_env_vars, monkeypatch):
        with patch('app.services.gemini_client.genai.Client') as mock_client:
            get_gemini_client()
            monkeypatch.setenv('GEMINI_API_KEY', 'rotated-key')
            get_settings.cache_clear()
            get_gemini_client()

        assert mock_client.call_count == 2
        mock_client.assert_called_with(api_key='rotated-key')

    def test_get_gemini_client_missing_api_key(self):
        """Without a key the client cannot be built; the error names the variable."""
        with patch('app.services.gemini_client.get_settings') as mock_settings, \
                patch('app.services.gemini_client.genai.Client') as mock_client:
            mock_settings.return_value = MagicMock(gemini_api_key=None)

            with pytest.raises(ValueError) as exc_info:
                get_gemini_client()

            mock_client.assert_not_called()

        assert 'GEMINI_API_KEY not set' in str(exc_info.value)

    def test_get_gemini_client_empty_api_key(self, monkeypatch):
        """A blank key fails settings validation before any client is built."""
        get_settings.cache_clear()
        monkeypatch.setenv('GEMINI_API_KEY', '')

        with pytest.raises(ValueError) as exc_info:
            get_gemini_client()

        assert 'GEMINI_API_KEY' in str(exc_info.value)
        get_settings.cache_clear()
