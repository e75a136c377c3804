"""Model table loader and public-name resolution."""
import json
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional

from .errors import ConfigurationError, ProviderUnavailable, UnknownModel

logger = logging.getLogger("ollamaproxy.registry")


class ProviderKind(str, Enum):
    OPENAI = "openai"
    GOOGLE = "google"
    OPENROUTER = "openrouter"


@dataclass(frozen=True)
class ModelEntry:
    public_name: str
    provider: ProviderKind
    upstream_model: str


BUILTIN_MODELS = {
    "gpt-4o-mini": {"provider": "openai", "model": "gpt-4o-mini"},
    "gpt-4.1-mini": {"provider": "openai", "model": "gpt-4.1-mini"},
    "gpt-4.1-nano": {"provider": "openai", "model": "gpt-4.1-nano"},
    "gemini-2.5-flash": {"provider": "google", "model": "gemini-2.5-flash"},
    "gemini-2.5-flash-lite-preview-06-17": {
        "provider": "google",
        "model": "gemini-2.5-flash-lite-preview-06-17",
    },
    "deepseek-r1": {"provider": "openrouter", "model": "deepseek/deepseek-r1-0528:free"},
}

# Mimics the size reported by a local model server; clients only display it.
_REPORTED_SIZE = 1000000000


def _parse_entries(raw, source: str) -> List[ModelEntry]:
    """Validate a ``name -> {provider, model}`` mapping; any bad entry is fatal."""
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{source}: model table must be a JSON object")
    entries = []
    for name, item in raw.items():
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"{source}: model name must be a non-empty string")
        if not isinstance(item, dict):
            raise ConfigurationError(f"{source}: model '{name}' must be an object")
        provider = item.get("provider")
        try:
            kind = ProviderKind(provider)
        except ValueError:
            raise ConfigurationError(f"{source}: model '{name}' has unknown provider: {provider}") from None
        target_model = item.get("model")
        if not isinstance(target_model, str) or not target_model.strip():
            raise ConfigurationError(f"{source}: model '{name}' missing model")
        entries.append(ModelEntry(public_name=name, provider=kind, upstream_model=target_model.strip()))
    return entries


def load_model_table(path: Optional[str]) -> List[ModelEntry]:
    """Load the external model table if it exists, otherwise the built-in one.

    The two tables are never merged. A file that exists but cannot be parsed
    raises ``ConfigurationError``.
    """
    if path and os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"{path}: cannot load model table: {e}") from e
        logger.info("Loaded model table from %s", path)
        return _parse_entries(raw, path)
    return _parse_entries(BUILTIN_MODELS, "built-in")


class ModelRegistry:
    """Read-only mapping of public model names to provider entries."""

    def __init__(self, entries: Iterable[ModelEntry], active_providers: Iterable[ProviderKind]):
        self._entries: Dict[str, ModelEntry] = {}
        for entry in entries:
            if entry.public_name in self._entries:
                raise ConfigurationError(f"duplicate model name: {entry.public_name}")
            self._entries[entry.public_name] = entry
        self._active = frozenset(active_providers)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def active_providers(self) -> frozenset:
        return self._active

    def resolve(self, public_name) -> ModelEntry:
        entry = self._entries.get(public_name) if isinstance(public_name, str) else None
        if entry is None:
            raise UnknownModel(public_name)
        if entry.provider not in self._active:
            raise ProviderUnavailable(entry.provider.value)
        return entry

    def available(self) -> List[ModelEntry]:
        """Entries whose provider has a configured credential, in table order."""
        return [entry for entry in self._entries.values() if entry.provider in self._active]

    def tags_response(self, modified_at: str) -> List[Mapping]:
        """Return the ``/api/tags`` model list."""
        return [
            {
                "name": entry.public_name,
                "model": entry.public_name,
                "modified_at": modified_at,
                "size": _REPORTED_SIZE,
                "digest": "sha256:" + re.sub(r"[^a-zA-Z0-9]", "", entry.public_name),
            }
            for entry in self.available()
        ]


def load_registry(path: Optional[str], active_providers: Iterable[ProviderKind]) -> ModelRegistry:
    return ModelRegistry(load_model_table(path), active_providers)
