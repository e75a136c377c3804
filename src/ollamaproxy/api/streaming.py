"""NDJSON streaming for chat and generate endpoints."""
import json
import logging
from typing import Any, Callable, Iterator, List, Optional

from ..core.errors import ProxyError
from ..providers.base import TextStream
from ..utils.logging import EventLogger
from .envelopes import delta_chunk, error_chunk, final_chunk

NDJSON_MIMETYPE = "application/x-ndjson"


def _line(payload: dict) -> str:
    return json.dumps(payload, ensure_ascii=False) + "\n"


def stream_ndjson(
    open_stream: Callable[[], TextStream],
    *,
    key: str,
    model: str,
    events: EventLogger,
    context: Optional[List[Any]] = None,
    request_id: str = "",
) -> Iterator[str]:
    """Yield one ``done: false`` line per upstream delta, then one ``done: true`` line.

    Headers are already committed by the time this runs, so failures become a
    terminal ``done: true`` line carrying ``error``. Closing the generator
    (client disconnect) closes the upstream stream.
    """
    upstream = None
    try:
        upstream = open_stream()
        for delta in upstream:
            yield _line(delta_chunk(key, model, delta))
        yield _line(final_chunk(key, model, upstream.reasoning, context))
    except ProxyError as e:
        events.log(logging.ERROR, "stream_error", request_id=request_id, model=model, error=e.message)
        yield _line(error_chunk(model, e.message))
    except Exception as e:
        events.log(logging.ERROR, "stream_error", request_id=request_id, model=model, error=str(e))
        yield _line(error_chunk(model, str(e)))
    finally:
        if upstream is not None:
            upstream.close()
