"""Tests for environment settings and adapter wiring."""
import pytest

from ollamaproxy.core.registry import ProviderKind
from ollamaproxy.core.settings import DEFAULT_OPENROUTER_BASE_URL, Settings, get_settings
from ollamaproxy.providers.factory import build_adapters
from ollamaproxy.providers.gemini_provider import GeminiAdapter
from ollamaproxy.providers.openai_provider import OpenAIAdapter

_ENV_KEYS = (
    "OPENAI_API_KEY",
    "GEMINI_API_KEY",
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "PORT",
    "UPSTREAM_TIMEOUT",
    "APP_ENV",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_defaults(clean_env):
    settings = get_settings()
    assert settings.port == 11434
    assert settings.openrouter_base_url == DEFAULT_OPENROUTER_BASE_URL
    assert settings.upstream_timeout is None
    assert settings.log_timestamps is True


def test_environment_overrides(clean_env):
    clean_env.setenv("OPENROUTER_API_KEY", "or-key")
    clean_env.setenv("OPENROUTER_BASE_URL", "http://localhost:9000/v1")
    clean_env.setenv("PORT", "8080")
    clean_env.setenv("UPSTREAM_TIMEOUT", "12.5")
    clean_env.setenv("APP_ENV", "production")
    settings = get_settings()
    assert settings.openrouter_api_key == "or-key"
    assert settings.openrouter_base_url == "http://localhost:9000/v1"
    assert settings.port == 8080
    assert settings.upstream_timeout == 12.5
    assert settings.log_timestamps is False


def test_blank_keys_are_absent(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "   ")
    assert get_settings().openai_api_key is None


def test_build_adapters_only_for_configured_keys():
    assert build_adapters(Settings()) == {}
    adapters = build_adapters(Settings(openai_api_key="sk", gemini_api_key="g", openrouter_api_key="or"))
    assert set(adapters) == {ProviderKind.OPENAI, ProviderKind.GOOGLE, ProviderKind.OPENROUTER}
    assert isinstance(adapters[ProviderKind.OPENAI], OpenAIAdapter)
    assert isinstance(adapters[ProviderKind.GOOGLE], GeminiAdapter)
    assert adapters[ProviderKind.OPENROUTER].name == "openrouter"
