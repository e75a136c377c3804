"""Provider adapter capability and shared result types."""
from __future__ import annotations

import base64
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, NamedTuple, Optional, Sequence

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options; ``None`` leaves the provider default in place."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None


@dataclass
class GenerationResult:
    text: str
    reasoning: Optional[str] = None
    raw_messages: Optional[List[dict]] = None


class Delta(NamedTuple):
    text: str = ""
    reasoning: str = ""


class TextStream:
    """Single-pass iterator over upstream text deltas.

    Reasoning fragments seen along the way are collected and exposed through
    ``reasoning`` once iteration finishes. ``close`` releases the upstream
    connection and is safe to call more than once.
    """

    def __init__(self, deltas: Iterator[Delta], close: Optional[Callable[[], Any]] = None):
        self._deltas = deltas
        self._close = close
        self._reasoning: List[str] = []
        self.raw_messages: Optional[List[dict]] = None
        self.finished = False

    def __iter__(self) -> "TextStream":
        return self

    def __next__(self) -> str:
        while True:
            try:
                delta = next(self._deltas)
            except StopIteration:
                self.finished = True
                raise
            if delta.reasoning:
                self._reasoning.append(delta.reasoning)
            if delta.text:
                return delta.text

    @property
    def reasoning(self) -> Optional[str]:
        if not self._reasoning:
            return None
        return "".join(self._reasoning)

    def close(self) -> None:
        close, self._close = self._close, None
        if close is not None:
            close()


class ProviderAdapter(ABC):
    """One upstream provider; instances are shared read-only across requests."""

    name: str = "provider"

    @abstractmethod
    def complete(self, model: str, messages: Sequence[dict], options: GenerationOptions) -> GenerationResult:
        """Run a blocking generation and return the extracted result."""

    @abstractmethod
    def stream(self, model: str, messages: Sequence[dict], options: GenerationOptions) -> TextStream:
        """Start a streaming generation."""


def coerce_text(content) -> str:
    """Return ``content`` as text; block lists join their text blocks, anything else is ""."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str):
                parts.append(block["text"])
        return "".join(parts)
    return ""


def build_result(text, reasoning=None, raw_messages=None) -> GenerationResult:
    """Assemble a result, preferring the last assistant message when one is present."""
    if isinstance(raw_messages, list):
        assistant = None
        for message in raw_messages:
            if isinstance(message, dict) and message.get("role") == "assistant":
                assistant = message
        if assistant is not None:
            content = assistant.get("content") or assistant.get("text")
            if content:
                text = content
            if assistant.get("reasoning"):
                reasoning = assistant["reasoning"]
    else:
        raw_messages = None
    if not isinstance(reasoning, str) or not reasoning:
        reasoning = None
    return GenerationResult(text=coerce_text(text), reasoning=reasoning, raw_messages=raw_messages)


def image_url_of(block: dict) -> Optional[str]:
    """Return the image URL carried by a content block, if it is an image block."""
    if block.get("type") == "image" and isinstance(block.get("image"), str):
        return block["image"]
    image_url = block.get("image_url")
    if isinstance(image_url, str):
        return image_url
    if isinstance(image_url, dict) and isinstance(image_url.get("url"), str):
        return image_url["url"]
    return None


def split_data_url(url: str):
    """Return ``(mime_type, raw_bytes)`` for a base64 data URL, or None."""
    match = _DATA_URL_RE.match(url)
    if not match:
        return None
    return match.group("mime"), base64.b64decode(match.group("data"))
