"""
Error types shared by the uploaders, the record store and the handler.
"""

from typing import Optional


class ConfigurationError(ValueError):
    """A required credential or identifier is missing. Raised before any network call."""


class UploadError(RuntimeError):
    """A single file could not be stored by the primary upload strategy."""

    def __init__(self, provider: str, filename: str, detail: str = ""):
        self.provider = provider
        self.filename = filename
        self.detail = detail
        super().__init__(f"{provider} upload failed for {filename}: {detail}" if detail else f"{provider} upload failed for {filename}")


class RecordStoreError(RuntimeError):
    """The record store rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def require(value: str, env_name: str) -> str:
    """Return value or raise a ConfigurationError naming the env var."""
    if not value:
        raise ConfigurationError(f"Missing required env var: {env_name}")
    return value
