"""Image payload detection and multimodal content blocks."""
import base64
import re
from typing import Callable, List, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..core.errors import ImageFetchFailed, UnsupportedImageInput
from .schemas import GenerateRequest, RequestShape

JPEG_DATA_URL_PREFIX = "data:image/jpeg;base64,"

_BASE64_SNIFF_RE = re.compile(r"^[A-Za-z0-9+/=\s]+$")
_IMAGE_DATA_URL_RE = re.compile(r"^data:image/[\w.+-]+;base64,")
_SNIFF_LENGTH = 80

Fetcher = Callable[[str], bytes]


def fetch_image(url: str, timeout: Optional[float] = None) -> bytes:
    """Download an image; any non-2xx response or transport error raises ``ImageFetchFailed``."""
    kwargs = {"timeout": timeout} if timeout is not None else {}
    try:
        req = Request(url, headers={"User-Agent": "ollamaproxy"})
        with urlopen(req, **kwargs) as resp:
            status = getattr(resp, "status", 200)
            if status < 200 or status >= 300:
                raise ImageFetchFailed(url, f"status {status}")
            return resp.read()
    except HTTPError as e:
        raise ImageFetchFailed(url, f"status {e.code}") from e
    except URLError as e:
        raise ImageFetchFailed(url, str(e.reason)) from e
    except (ValueError, OSError) as e:
        # Malformed URLs, InvalidURL, and timeouts while reading the body.
        raise ImageFetchFailed(url, str(e) or type(e).__name__) from e


def looks_like_base64(value: str) -> bool:
    if value.startswith("data:"):
        return False
    head = value[:_SNIFF_LENGTH]
    return bool(head) and bool(_BASE64_SNIFF_RE.match(head))


def to_image_data_url(item, fetch: Fetcher) -> str:
    """Classify one image item and return it as a data URL."""
    if not isinstance(item, str):
        raise UnsupportedImageInput(repr(item))
    if _IMAGE_DATA_URL_RE.match(item):
        return item
    if looks_like_base64(item):
        return JPEG_DATA_URL_PREFIX + item
    if item.startswith(("http://", "https://")):
        data = fetch(item)
        return JPEG_DATA_URL_PREFIX + base64.b64encode(data).decode("ascii")
    raise UnsupportedImageInput(item)


def build_message_blocks(content, images, fetch: Fetcher) -> List[dict]:
    """Leading text (if any) followed by the images in input order."""
    blocks = []
    if isinstance(content, list):
        blocks.extend(content)
    elif isinstance(content, str) and content.strip():
        blocks.append({"type": "text", "text": content.strip()})
    for item in images or []:
        blocks.append({"type": "image", "image": to_image_data_url(item, fetch)})
    if not blocks:
        blocks.append({"type": "text", "text": ""})
    return blocks


def build_blocks(shape: RequestShape, fetch: Fetcher) -> List[dict]:
    """Turn an image-carrying request into raw messages with block content.

    Chat messages without an ``images`` field are returned untouched so the
    normalizer treats them as usual.
    """
    if isinstance(shape, GenerateRequest):
        return [{"role": "user", "content": build_message_blocks(shape.prompt, shape.images, fetch)}]
    messages = []
    for msg in shape.messages or []:
        raw = {"role": msg.role, "content": msg.content}
        if msg.images is not None:
            raw["content"] = build_message_blocks(msg.content, msg.images, fetch)
        messages.append(raw)
    return messages

