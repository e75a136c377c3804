"""Error taxonomy for request handling and startup."""
from typing import Optional


class ProxyError(Exception):
    """Base class for errors surfaced to the caller as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownModel(ProxyError):
    def __init__(self, name):
        super().__init__(f"Model {name} not supported")
        self.name = name


class ProviderUnavailable(ProxyError):
    def __init__(self, provider: str):
        super().__init__(f"Provider {provider} not available")
        self.provider = provider


class NoValidMessages(ProxyError):
    def __init__(self):
        super().__init__("No valid messages found")


class UnsupportedImageInput(ProxyError):
    def __init__(self, value: str):
        preview = value[:40] + "..." if len(value) > 40 else value
        super().__init__(f"Unsupported image input: {preview}")


class ImageFetchFailed(ProxyError):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch image {url}: {reason}")
        self.url = url
        self.reason = reason


class UpstreamError(ProxyError):
    """A failed upstream call; ``status`` is None for connection or shape failures."""

    def __init__(self, provider: str, status: Optional[int], detail: str):
        label = f"{provider} error"
        if status is not None:
            label = f"{provider} error {status}"
        super().__init__(f"{label}: {detail}")
        self.provider = provider
        self.status = status
        self.detail = detail


class MalformedRequestBody(ProxyError):
    pass


class InternalError(ProxyError):
    pass


class ConfigurationError(Exception):
    """Startup failure; the process must not start serving."""
