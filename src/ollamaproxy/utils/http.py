"""HTTP helpers and error responses."""
from datetime import datetime, timezone

from flask import jsonify

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def error_response(message: str, status: int = 500):
    """Return the ``{"error": message}`` envelope."""
    return jsonify({"error": message}), status


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
