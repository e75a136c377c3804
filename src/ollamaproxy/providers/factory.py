"""Build the active adapter set from configured credentials."""
from typing import Dict

from ..core.registry import ProviderKind
from ..core.settings import Settings
from . import gemini_provider, openai_provider
from .base import ProviderAdapter


def build_adapters(settings: Settings) -> Dict[ProviderKind, ProviderAdapter]:
    """Return one adapter per provider with a credential; the rest are absent."""
    adapters: Dict[ProviderKind, ProviderAdapter] = {}
    if settings.openai_api_key:
        client = openai_provider.create_client(
            settings.openai_api_key, settings.openai_base_url, settings.upstream_timeout
        )
        adapters[ProviderKind.OPENAI] = openai_provider.OpenAIAdapter(ProviderKind.OPENAI.value, client)
    if settings.gemini_api_key:
        client = gemini_provider.create_client(settings.gemini_api_key, settings.upstream_timeout)
        adapters[ProviderKind.GOOGLE] = gemini_provider.GeminiAdapter(client)
    if settings.openrouter_api_key:
        client = openai_provider.create_client(
            settings.openrouter_api_key, settings.openrouter_base_url, settings.upstream_timeout
        )
        adapters[ProviderKind.OPENROUTER] = openai_provider.OpenAIAdapter(
            ProviderKind.OPENROUTER.value, client, supports_top_k=True
        )
    return adapters
