"""Gemini adapter on the google-genai SDK."""
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..core.errors import UpstreamError
from .base import (
    Delta,
    GenerationOptions,
    GenerationResult,
    ProviderAdapter,
    TextStream,
    build_result,
    image_url_of,
    split_data_url,
)


def create_client(api_key: str, timeout: Optional[float]) -> genai.Client:
    if timeout is not None:
        # google-genai takes the timeout in milliseconds.
        return genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=int(timeout * 1000)))
    return genai.Client(api_key=api_key)


def _to_parts(content) -> List[dict]:
    if isinstance(content, str):
        return [{"text": content}]
    parts = []
    for block in content:
        if not isinstance(block, dict):
            continue
        url = image_url_of(block)
        if url:
            decoded = split_data_url(url)
            if decoded:
                mime_type, data = decoded
                parts.append({"inline_data": {"mime_type": mime_type, "data": data}})
            else:
                parts.append({"file_data": {"file_uri": url, "mime_type": "image/jpeg"}})
        elif isinstance(block.get("text"), str):
            parts.append({"text": block["text"]})
    return parts


def _text_of(content) -> str:
    if isinstance(content, str):
        return content
    return "".join(
        block["text"]
        for block in content
        if isinstance(block, dict) and block.get("type", "text") == "text" and isinstance(block.get("text"), str)
    )


def to_gemini_contents(messages: Iterable[dict]) -> List[dict]:
    """Map normalized messages to Gemini ``contents``.

    ``assistant`` becomes ``model``. System messages are folded into the first
    user turn as ``system + "\\n\\n" + text``; with no user turn a leading one
    is synthesized.
    """
    system_texts = []
    contents = []
    for msg in messages:
        if msg["role"] == "system":
            text = _text_of(msg["content"])
            if text:
                system_texts.append(text)
            continue
        role = "model" if msg["role"] == "assistant" else "user"
        contents.append({"role": role, "parts": _to_parts(msg["content"])})

    if not system_texts:
        return contents
    system_text = "\n\n".join(system_texts)
    for item in contents:
        if item["role"] != "user":
            continue
        parts = item["parts"]
        if parts and "text" in parts[0]:
            parts[0] = {"text": f"{system_text}\n\n{parts[0]['text']}"}
        else:
            parts.insert(0, {"text": system_text})
        return contents
    return [{"role": "user", "parts": [{"text": system_text}]}] + contents


def _split_candidate(response) -> Optional[Tuple[str, str]]:
    """Return ``(text, thoughts)`` from the first candidate, or None if there is none."""
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    text, thoughts = [], []
    for part in parts:
        value = getattr(part, "text", None)
        if not isinstance(value, str):
            continue
        if getattr(part, "thought", None):
            thoughts.append(value)
        else:
            text.append(value)
    return "".join(text), "".join(thoughts)


class GeminiAdapter(ProviderAdapter):
    name = "google"

    def __init__(self, client: genai.Client):
        self._client = client

    @staticmethod
    def _config(options: GenerationOptions) -> types.GenerateContentConfig:
        fields = {
            "temperature": options.temperature,
            "top_p": options.top_p,
            "top_k": options.top_k,
            "max_output_tokens": options.max_output_tokens,
        }
        fields = {key: value for key, value in fields.items() if value is not None}
        # Thought parts are only returned when asked for.
        return types.GenerateContentConfig(
            thinking_config=types.ThinkingConfig(include_thoughts=True),
            **fields,
        )

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except genai_errors.APIError as e:
            raise UpstreamError(self.name, e.code, e.message or str(e)) from e
        except httpx.HTTPError as e:
            raise UpstreamError(self.name, None, f"Failed to connect to API: {e}") from e

    def complete(self, model: str, messages: Sequence[dict], options: GenerationOptions) -> GenerationResult:
        with self._translate_errors():
            response = self._client.models.generate_content(
                model=model,
                contents=to_gemini_contents(messages),
                config=self._config(options),
            )
        split = _split_candidate(response)
        if split is None:
            feedback = getattr(response, "prompt_feedback", None)
            reason = getattr(feedback, "block_reason", None)
            detail = "Upstream returned no candidates"
            if reason:
                detail = f"{detail} (blocked: {reason})"
            raise UpstreamError(self.name, None, detail)
        text, thoughts = split
        return build_result(text, thoughts)

    def stream(self, model: str, messages: Sequence[dict], options: GenerationOptions) -> TextStream:
        with self._translate_errors():
            upstream = self._client.models.generate_content_stream(
                model=model,
                contents=to_gemini_contents(messages),
                config=self._config(options),
            )
        return TextStream(self._deltas(upstream), close=getattr(upstream, "close", None))

    def _deltas(self, upstream: Iterable[Any]) -> Iterator[Delta]:
        with self._translate_errors():
            for chunk in upstream:
                split = _split_candidate(chunk)
                if split is None:
                    continue
                text, thoughts = split
                yield Delta(text=text, reasoning=thoughts)
