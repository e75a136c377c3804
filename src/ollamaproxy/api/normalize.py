"""Inbound message normalization."""
from typing import Iterable, List, NamedTuple, Optional, Union

from pydantic import BaseModel

from ..core.errors import NoValidMessages
from .schemas import GenerateRequest, RequestShape
from .vision import Fetcher, build_blocks


class PlainText(NamedTuple):
    text: str


class Blocks(NamedTuple):
    blocks: list


RawContent = Union[PlainText, Blocks]


def classify_content(value) -> RawContent:
    if isinstance(value, list):
        return Blocks(value)
    if value is None:
        return PlainText("")
    return PlainText(str(value).strip())


def _normalize_one(item) -> Optional[dict]:
    if isinstance(item, BaseModel):
        item = item.model_dump()
    if not isinstance(item, dict):
        return None
    role = "assistant" if item.get("role") == "assistant" else "user"
    content = classify_content(item.get("content"))
    if isinstance(content, Blocks):
        if not content.blocks:
            return None
        return {"role": role, "content": content.blocks}
    if not content.text:
        return None
    return {"role": role, "content": content.text}


def normalize_messages(raw_messages: Optional[Iterable], raw_prompt: Optional[str] = None) -> List[dict]:
    """Return ordered ``{role, content}`` dicts; empty entries are dropped.

    ``raw_prompt`` is only consulted when there is no messages array.
    """
    if raw_messages is None:
        raw_messages = [{"role": "user", "content": raw_prompt}] if isinstance(raw_prompt, str) else []
    messages = []
    for item in raw_messages:
        normalized = _normalize_one(item)
        if normalized is not None:
            messages.append(normalized)
    if not messages:
        raise NoValidMessages()
    return messages


def normalize_request(shape: RequestShape, fetch: Fetcher) -> List[dict]:
    """Resolve a chat or generate request into the adapter-bound message list."""
    if shape.has_images():
        messages = normalize_messages(build_blocks(shape, fetch))
    elif isinstance(shape, GenerateRequest):
        messages = normalize_messages(None, shape.prompt)
    else:
        messages = normalize_messages(shape.messages)
    if isinstance(shape, GenerateRequest) and shape.system and shape.system.strip():
        messages.insert(0, {"role": "system", "content": shape.system.strip()})
    return messages
