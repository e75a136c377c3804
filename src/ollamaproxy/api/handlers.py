"""Route handlers for the local model-serving API."""
import json
import logging
from typing import Dict, Type

from flask import Response, g, jsonify, request, stream_with_context
from pydantic import ValidationError

from ..core.errors import InternalError, MalformedRequestBody, ProxyError
from ..core.registry import ModelRegistry, ProviderKind
from ..core.settings import Settings
from ..providers.base import ProviderAdapter
from ..utils.http import error_response, utc_timestamp
from ..utils.logging import EventLogger
from .envelopes import build_envelope
from .normalize import normalize_request
from .schemas import ChatRequest, GenerateRequest, RequestShape
from .streaming import NDJSON_MIMETYPE, stream_ndjson
from .vision import fetch_image


def _read_json_body() -> dict:
    raw = request.get_data(as_text=True)
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedRequestBody(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise MalformedRequestBody("Request body must be a JSON object")
    return data


def _parse_shape(shape_cls: Type[RequestShape], data: dict) -> RequestShape:
    try:
        return shape_cls.model_validate(data)
    except ValidationError as e:
        raise MalformedRequestBody(str(e)) from e


def register_routes(
    app,
    settings: Settings,
    registry: ModelRegistry,
    adapters: Dict[ProviderKind, ProviderAdapter],
    events: EventLogger,
):
    """Register Flask routes on the app."""

    def _fetch(url: str) -> bytes:
        return fetch_image(url, settings.upstream_timeout)

    def _handle_generation(shape_cls: Type[RequestShape]):
        try:
            shape = _parse_shape(shape_cls, _read_json_body())
            entry = registry.resolve(shape.model)
            g.resolved_model = entry.public_name
            g.resolved_provider = entry.provider.value
            messages = normalize_request(shape, _fetch)
            options = shape.generation_options()
            adapter = adapters[entry.provider]
            events.log(
                logging.DEBUG,
                "generation_request",
                request_id=g.request_id,
                model=entry.public_name,
                upstream_model=entry.upstream_model,
                messages=len(messages),
                stream=shape.streaming,
            )

            if shape.streaming:
                generator = stream_ndjson(
                    lambda: adapter.stream(entry.upstream_model, messages, options),
                    key=shape.envelope_key,
                    model=entry.public_name,
                    events=events,
                    context=shape.echo_context(),
                    request_id=g.request_id,
                )
                return Response(
                    stream_with_context(generator),
                    mimetype=NDJSON_MIMETYPE,
                    headers={"Cache-Control": "no-cache"},
                )

            result = adapter.complete(entry.upstream_model, messages, options)
            return jsonify(build_envelope(shape.envelope_key, entry.public_name, result, shape.echo_context()))
        except ProxyError as e:
            events.log(
                logging.ERROR,
                "request_error",
                request_id=g.request_id,
                kind=type(e).__name__,
                error=e.message,
            )
            return error_response(e.message, e.status_code)
        except Exception as e:
            err = InternalError(str(e) or type(e).__name__)
            events.log(logging.ERROR, "request_error", request_id=g.request_id, kind="InternalError", error=err.message)
            return error_response(err.message, err.status_code)

    @app.route('/', methods=['GET'])
    def index():
        return Response("Ollama is running in proxy mode.", mimetype="text/plain")

    @app.route('/api/version', methods=['GET'])
    def version():
        return jsonify({"version": settings.app_version})

    @app.route('/api/tags', methods=['GET'])
    def tags():
        return jsonify({"models": registry.tags_response(utc_timestamp())})

    @app.route('/api/chat', methods=['POST'])
    def chat():
        return _handle_generation(ChatRequest)

    @app.route('/api/generate', methods=['POST'])
    def generate():
        return _handle_generation(GenerateRequest)
