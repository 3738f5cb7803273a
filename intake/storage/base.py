"""
Blob upload abstraction. Cloudinary OR Google Drive OR Airtable attachment tokens.
Controlled by the STORAGE_PROVIDER flag.
"""

import logging
import mimetypes
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from ..core.config import Settings
from ..core.errors import ConfigurationError
from ..core.flags import STORAGE_PROVIDERS

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    filename: str
    url: Optional[str] = None    # public URL (Cloudinary / Drive)
    token: Optional[str] = None  # provider id: public_id, Drive file id, or Airtable token


class Uploader(ABC):
    name: str = ""

    @abstractmethod
    async def upload(self, data: bytes, filename: str, content_type: str = "") -> UploadResult:
        """Store one file. Raises UploadError on provider failure."""
        ...


def get_uploader(provider: str, client: httpx.AsyncClient, settings: Settings, record_store=None) -> Uploader:
    """Return the configured upload strategy. Credentials are checked here, not on first upload."""
    p = (provider or "").strip().lower()

    if p == "cloudinary":
        from .cloudinary import CloudinaryUploader
        return CloudinaryUploader(client, settings)
    if p == "gdrive":
        from .gdrive import DriveUploader
        return DriveUploader(client, settings)
    if p == "airtable":
        from .airtable import AirtableTokenUploader
        if record_store is None:
            raise ConfigurationError("STORAGE_PROVIDER=airtable requires the Airtable record store")
        return AirtableTokenUploader(record_store)

    raise ConfigurationError(
        f"Unknown STORAGE_PROVIDER '{provider}'. Supported: {', '.join(STORAGE_PROVIDERS)}"
    )


# ── Helpers ───────────────────────────────────────────────────────────

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def sanitize_field_name(name: str) -> str:
    """Form field name → safe filename stem."""
    return _UNSAFE.sub("_", name)


def slot_filename(field: str, original: str) -> str:
    """`<sanitizedField><ext>`, so files from different slots never collide."""
    return f"{sanitize_field_name(field)}{Path(original or '').suffix}"


def guess_content_type(filename: str) -> str:
    ct, _ = mimetypes.guess_type(filename)
    return ct or "application/octet-stream"
