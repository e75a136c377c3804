"""Application factory and entrypoint."""
import logging
import os
import sys
import time
from typing import Dict, Optional

from flask import Flask

from .errors import ConfigurationError
from .registry import ModelRegistry, ProviderKind, load_registry
from .settings import Settings, get_settings
from ..api.handlers import register_routes
from ..api.middleware import register_middlewares
from ..providers.base import ProviderAdapter
from ..providers.factory import build_adapters
from ..utils.logging import setup_logging


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[ModelRegistry] = None,
    adapters: Optional[Dict[ProviderKind, ProviderAdapter]] = None,
    log_stream=None,
) -> Flask:
    """Create and configure the Flask application.

    Raises ``ConfigurationError`` when no provider has a credential or the
    model table file is malformed.
    """
    settings = settings or get_settings()
    events = setup_logging(settings.log_level, log_stream, settings.log_timestamps, settings.log_dir)

    if adapters is None:
        adapters = build_adapters(settings)
    if not adapters:
        raise ConfigurationError("No API keys found. Set OPENAI_API_KEY, GEMINI_API_KEY, or OPENROUTER_API_KEY")
    if registry is None:
        registry = load_registry(settings.models_file, adapters.keys())

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_content_length
    app.config["APP_STARTED_AT"] = time.time()
    app.config["SETTINGS"] = settings
    app.config["REGISTRY"] = registry
    app.json.ensure_ascii = False

    register_middlewares(app, events)
    register_routes(app, settings, registry, adapters, events)

    events.log(
        logging.INFO,
        "startup",
        providers=sorted(kind.value for kind in adapters),
        models=[entry.public_name for entry in registry.available()],
    )
    return app


def run() -> None:
    """Run the Flask development server."""
    try:
        app = create_app()
    except ConfigurationError as e:
        print(f"[ollamaproxy] {e}", file=sys.stderr)
        raise SystemExit(1) from e
    settings = app.config["SETTINGS"]
    debug = os.getenv("FLASK_DEBUG", "").lower() in ("1", "true", "yes", "on")
    app.run(host=settings.host, port=settings.port, debug=debug, threaded=True)


if __name__ == "__main__":
    run()
