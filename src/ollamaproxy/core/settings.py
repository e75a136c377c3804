"""Environment-driven settings for the proxy."""
from dataclasses import dataclass
from functools import lru_cache
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _optional_float(name: str) -> Optional[float]:
    value = _optional(name)
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openrouter_base_url: str = DEFAULT_OPENROUTER_BASE_URL
    host: str = "0.0.0.0"
    port: int = 11434
    models_file: str = "models.json"
    app_version: str = "1.0.1d"
    app_env: str = "development"
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    upstream_timeout: Optional[float] = None
    max_body_mb: float = 32

    @property
    def max_content_length(self) -> int:
        return int(self.max_body_mb * 1024 * 1024)

    @property
    def log_timestamps(self) -> bool:
        return self.app_env.lower() != "production"


@lru_cache
def get_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        openai_api_key=_optional("OPENAI_API_KEY"),
        gemini_api_key=_optional("GEMINI_API_KEY"),
        openrouter_api_key=_optional("OPENROUTER_API_KEY"),
        openai_base_url=_optional("OPENAI_BASE_URL"),
        openrouter_base_url=_optional("OPENROUTER_BASE_URL") or DEFAULT_OPENROUTER_BASE_URL,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "11434")),
        models_file=os.getenv("MODELS_FILE", "models.json"),
        app_version=os.getenv("APP_VERSION", "1.0.1d"),
        app_env=os.getenv("APP_ENV", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=_optional("LOG_DIR"),
        upstream_timeout=_optional_float("UPSTREAM_TIMEOUT"),
        max_body_mb=float(os.getenv("MAX_BODY_MB", "32")),
    )
