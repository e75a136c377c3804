"""Pytest configuration and shared fixtures."""
import io

import pytest

from ollamaproxy.core.app import create_app
from ollamaproxy.core.registry import ModelEntry, ModelRegistry, ProviderKind
from ollamaproxy.core.settings import Settings
from ollamaproxy.providers.base import (
    Delta,
    GenerationResult,
    ProviderAdapter,
    TextStream,
)


class FakeAdapter(ProviderAdapter):
    """Records calls and replays canned results."""

    def __init__(self, name="openai", result=None, deltas=None, reasoning=None, fail_after=None, error=None):
        self.name = name
        self.result = result or GenerationResult(text="ok")
        self.deltas = list(deltas or [])
        self.reasoning = reasoning
        self.fail_after = fail_after
        self.error = error
        self.calls = []
        self.closed = False

    def complete(self, model, messages, options):
        self.calls.append(("complete", model, list(messages), options))
        return self.result

    def stream(self, model, messages, options):
        self.calls.append(("stream", model, list(messages), options))

        def _gen():
            for index, text in enumerate(self.deltas):
                if self.fail_after is not None and index == self.fail_after:
                    raise self.error
                yield Delta(text=text)
            if self.reasoning:
                yield Delta(reasoning=self.reasoning)

        def _close():
            self.closed = True

        return TextStream(_gen(), close=_close)


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-openai-key", app_env="production", log_level="DEBUG")


@pytest.fixture
def fake_adapter():
    return FakeAdapter()


@pytest.fixture
def registry():
    entries = [
        ModelEntry("gpt-4o-mini", ProviderKind.OPENAI, "gpt-4o-mini"),
        ModelEntry("gemini-2.5-flash", ProviderKind.GOOGLE, "gemini-2.5-flash"),
        ModelEntry("deepseek-r1", ProviderKind.OPENROUTER, "deepseek/deepseek-r1-0528:free"),
    ]
    return ModelRegistry(entries, [ProviderKind.OPENAI])


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def app(settings, registry, fake_adapter, log_stream):
    app = create_app(
        settings,
        registry=registry,
        adapters={ProviderKind.OPENAI: fake_adapter},
        log_stream=log_stream,
    )
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
