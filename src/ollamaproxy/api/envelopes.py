"""Caller-facing response envelopes for chat and generate."""
from typing import Any, List, Optional

from ..providers.base import GenerationResult
from ..utils.http import utc_timestamp

MESSAGE_KEY = "message"
RESPONSE_KEY = "response"


def _base(model: str, done: bool) -> dict:
    return {"model": model, "created_at": utc_timestamp(), "done": done}


def _set_content(payload: dict, key: str, text: str, reasoning: Optional[str]) -> None:
    if key == MESSAGE_KEY:
        payload["message"] = {"role": "assistant", "content": text}
        if reasoning:
            payload["message"]["reasoning"] = reasoning
    else:
        payload["response"] = text
        if reasoning:
            payload["reasoning"] = reasoning


def build_envelope(key: str, model: str, result: GenerationResult, context: Optional[List[Any]] = None) -> dict:
    """Map one completed generation into the non-streaming envelope."""
    payload = _base(model, True)
    _set_content(payload, key, result.text, result.reasoning)
    if result.raw_messages:
        payload["messages"] = result.raw_messages
    if context is not None:
        payload["context"] = context
    return payload


def delta_chunk(key: str, model: str, text: str) -> dict:
    payload = _base(model, False)
    _set_content(payload, key, text, None)
    return payload


def final_chunk(key: str, model: str, reasoning: Optional[str], context: Optional[List[Any]] = None) -> dict:
    payload = _base(model, True)
    _set_content(payload, key, "", reasoning)
    if context is not None:
        payload["context"] = context
    return payload


def error_chunk(model: str, message: str) -> dict:
    payload = _base(model, True)
    payload["error"] = message
    return payload
