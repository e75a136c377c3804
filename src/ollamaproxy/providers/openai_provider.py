"""OpenAI-compatible adapter (OpenAI and OpenRouter) on the openai SDK."""
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Sequence

import openai

from ..core.errors import UpstreamError
from .base import (
    Delta,
    GenerationOptions,
    GenerationResult,
    ProviderAdapter,
    TextStream,
    build_result,
    image_url_of,
)

_REASONING_KEYS = ("reasoning", "reasoning_content")


def create_client(api_key: str, base_url: Optional[str], timeout: Optional[float]) -> openai.OpenAI:
    """Create a configured OpenAI client with SDK retries disabled."""
    kwargs = {"api_key": api_key, "max_retries": 0}
    if base_url:
        kwargs["base_url"] = base_url
    if timeout is not None:
        kwargs["timeout"] = timeout
    return openai.OpenAI(**kwargs)


def _dump(obj) -> dict:
    """Serialize SDK objects to dict, stripping None fields."""
    if obj is None:
        return {}
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, dict):
        return {key: value for key, value in obj.items() if value is not None}
    return {}


def _reasoning_of(payload: dict) -> str:
    for key in _REASONING_KEYS:
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def to_openai_content(content):
    """Map normalized content to chat.completions content."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if not isinstance(block, dict):
            continue
        url = image_url_of(block)
        if url:
            parts.append({"type": "image_url", "image_url": {"url": url}})
        elif isinstance(block.get("text"), str):
            parts.append({"type": "text", "text": block["text"]})
    return parts


def to_openai_messages(messages: Iterable[dict]) -> List[dict]:
    return [{"role": msg["role"], "content": to_openai_content(msg["content"])} for msg in messages]


class OpenAIAdapter(ProviderAdapter):
    """Chat completions against an OpenAI-style endpoint.

    OpenRouter uses the same wire format with its own base URL and key; it also
    accepts ``top_k`` as an extra body field, which plain OpenAI rejects.
    """

    def __init__(self, name: str, client: openai.OpenAI, supports_top_k: bool = False):
        self.name = name
        self._client = client
        self._supports_top_k = supports_top_k

    def _params(self, options: GenerationOptions) -> dict:
        params = {}
        if options.temperature is not None:
            params["temperature"] = options.temperature
        if options.top_p is not None:
            params["top_p"] = options.top_p
        if options.max_output_tokens is not None:
            params["max_tokens"] = options.max_output_tokens
        if options.top_k is not None and self._supports_top_k:
            params["extra_body"] = {"top_k": options.top_k}
        return params

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except openai.APIStatusError as e:
            raise UpstreamError(self.name, e.status_code, e.message) from e
        except openai.APIConnectionError as e:
            raise UpstreamError(self.name, None, f"Failed to connect to API: {e}") from e
        except openai.OpenAIError as e:
            raise UpstreamError(self.name, None, str(e)) from e

    def complete(self, model: str, messages: Sequence[dict], options: GenerationOptions) -> GenerationResult:
        with self._translate_errors():
            response = self._client.chat.completions.create(
                model=model,
                messages=to_openai_messages(messages),
                **self._params(options),
            )
        choices = getattr(response, "choices", None)
        if not choices:
            raise UpstreamError(self.name, None, "Upstream returned no choices")
        message = _dump(getattr(choices[0], "message", None))
        raw_messages = None
        # Kept for upstreams that answer with several choices; a single choice has no debug list.
        if len(choices) > 1:
            raw_messages = [_dump(getattr(choice, "message", None)) for choice in choices]
        return build_result(message.get("content"), _reasoning_of(message), raw_messages)

    def stream(self, model: str, messages: Sequence[dict], options: GenerationOptions) -> TextStream:
        with self._translate_errors():
            upstream = self._client.chat.completions.create(
                model=model,
                messages=to_openai_messages(messages),
                stream=True,
                **self._params(options),
            )
        return TextStream(self._deltas(upstream), close=getattr(upstream, "close", None))

    def _deltas(self, upstream: Iterable[Any]) -> Iterator[Delta]:
        with self._translate_errors():
            for chunk in upstream:
                choices = getattr(chunk, "choices", None)
                if not choices:
                    continue
                delta = _dump(getattr(choices[0], "delta", None))
                content = delta.get("content")
                yield Delta(
                    text=content if isinstance(content, str) else "",
                    reasoning=_reasoning_of(delta),
                )
