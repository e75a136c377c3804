"""Structured logging helpers."""
import json
import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from typing import IO, Optional

LOGGER_NAME = "ollamaproxy"


def _build_rotating_handler(log_dir: str, filename: str) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    max_mb = float(os.getenv("LOG_FILE_MAX_MB", "10"))
    backup_count = int(os.getenv("LOG_FILE_BACKUPS", "5"))
    max_bytes = max(1, int(max_mb * 1024 * 1024))
    backup_count = max(1, backup_count)
    log_path = os.path.join(log_dir, filename)
    handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


class EventLogger:
    """Emits one JSON object per log line.

    ``ts`` is added to every line unless timestamps are disabled.
    """

    def __init__(self, logger: logging.Logger, timestamps: bool = True):
        self.logger = logger
        self.timestamps = timestamps

    def log(self, level: int, message: str, **fields) -> None:
        if not self.logger.isEnabledFor(level):
            return
        payload = {"message": message}
        if self.timestamps:
            payload["ts"] = int(time.time())
        payload.update(fields)
        self.logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def setup_logging(
    level: str,
    stream: Optional[IO[str]] = None,
    timestamps: bool = True,
    log_dir: Optional[str] = None,
) -> EventLogger:
    """Configure the package logger and return an event logger bound to it.

    Only the ``ollamaproxy`` logger is touched; the root logger and
    ``sys.stdout`` are left alone.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    stream_handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    stream_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(stream_handler)
    if log_dir:
        try:
            logger.addHandler(_build_rotating_handler(log_dir, "ollamaproxy.log"))
        except OSError as exc:
            # Fall back to stream-only if file logging can't be initialized.
            print(f"[ollamaproxy] file logging disabled: {exc}", file=sys.stderr)
    logger.propagate = False
    return EventLogger(logger, timestamps)
