"""Flask middleware registration for CORS, request ids, and access logging."""
import logging
import time
import uuid

from flask import Response, g, request

from ..utils.http import CORS_HEADERS, error_response
from ..utils.logging import EventLogger


def register_middlewares(app, events: EventLogger):
    """Register Flask middlewares on the app."""

    @app.before_request
    def attach_request_context():
        g.request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        g.request_start = time.time()

    @app.before_request
    def answer_preflight():
        if request.method == "OPTIONS":
            return Response(status=200)
        return None

    @app.after_request
    def add_headers(response):
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value

        latency_ms = None
        if hasattr(g, "request_start"):
            latency_ms = int((time.time() - g.request_start) * 1000)
        events.log(
            logging.INFO,
            "request",
            request_id=getattr(g, "request_id", ""),
            method=request.method,
            path=request.path,
            status=response.status_code,
            latency_ms=latency_ms,
            model=getattr(g, "resolved_model", None),
            provider=getattr(g, "resolved_provider", None),
        )
        return response

    @app.errorhandler(404)
    @app.errorhandler(405)
    def not_found(_err):
        return error_response("Not found", 404)
