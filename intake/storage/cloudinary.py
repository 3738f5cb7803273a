"""
Cloudinary signed upload. Direct HTTP call.

API: https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload
"""

import hashlib
import logging
import re
import time

import httpx

from ..core.config import Settings
from ..core.errors import UploadError, require
from .base import Uploader, UploadResult, guess_content_type

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"

_UNSAFE = re.compile(r"[^a-zA-Z0-9\-_.]")


def public_id_for(filename: str, now_ms: int) -> str:
    return f"{_UNSAFE.sub('-', filename)}-{now_ms}"


def sign(params: dict[str, str], api_secret: str) -> str:
    """SHA-1 of the alphabetically sorted `k=v` pairs joined by `&`, followed by the secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryUploader(Uploader):
    name = "cloudinary"

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self.cloud_name = require(settings.cloudinary_cloud_name, "CLOUDINARY_CLOUD_NAME")
        self.api_key = require(settings.cloudinary_api_key, "CLOUDINARY_API_KEY")
        self.api_secret = require(settings.cloudinary_api_secret, "CLOUDINARY_API_SECRET")
        self.folder = settings.cloudinary_folder

    async def upload(self, data: bytes, filename: str, content_type: str = "") -> UploadResult:
        now = time.time()
        params = {
            "folder": self.folder,
            "public_id": public_id_for(filename, int(now * 1000)),
            "timestamp": str(int(now)),
        }
        form = {**params, "api_key": self.api_key, "signature": sign(params, self.api_secret)}

        resp = await self._client.post(
            f"{CLOUDINARY_API_BASE}/{self.cloud_name}/auto/upload",
            data=form,
            files={"file": (filename, data, content_type or guess_content_type(filename))},
        )
        if not resp.is_success:
            logger.error("Cloudinary upload failed (%d): %s", resp.status_code, resp.text[:500])
            raise UploadError(self.name, filename, f"HTTP {resp.status_code}")

        result = resp.json()
        secure_url = result.get("secure_url")
        if not secure_url:
            raise UploadError(self.name, filename, "no secure_url in response")

        logger.info("Uploaded to Cloudinary: %s (%d bytes)", result.get("public_id"), len(data))
        return UploadResult(filename=filename, url=secure_url, token=result.get("public_id"))
