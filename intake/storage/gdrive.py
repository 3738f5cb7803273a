"""
Google Drive upload via a service account.

Handles:
  - Service-account OAuth (JWT bearer grant, optional domain-wide delegation)
  - Shared Drive check on the target folder
  - Resumable upload (metadata POST, then a single bytes PUT)
  - "Anyone with the link can view" permission

Uses raw httpx to stay consistent with the codebase (no google-api-python-client).
"""

import json
import logging
import time
from typing import Optional

import httpx
from jose import jwt

from ..core.config import Settings
from ..core.errors import ConfigurationError, UploadError, require
from .base import Uploader, UploadResult

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────────

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"

TOKEN_LIFETIME = 3600
UPLOAD_MIME_TYPE = "application/octet-stream"


def direct_download_url(file_id: str) -> str:
    return f"https://drive.google.com/uc?id={file_id}&export=download"


class DriveUploader(Uploader):
    """
    Uploads into GDRIVE_PARENT_FOLDER_ID.

    Service accounts have no personal storage, so the folder must live in a
    Shared Drive unless GDRIVE_IMPERSONATE_EMAIL enables domain-wide delegation.
    """

    name = "gdrive"

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self.client_email = require(settings.gdrive_service_account_email, "GDRIVE_SERVICE_ACCOUNT_EMAIL")
        self.private_key = require(settings.gdrive_service_account_private_key, "GDRIVE_SERVICE_ACCOUNT_PRIVATE_KEY")
        if not settings.gdrive_parent_folder_id:
            raise ConfigurationError(
                "GDRIVE_PARENT_FOLDER_ID is required. Set it to a Shared Drive folder ID "
                "and share it with the service account."
            )
        self.parent_folder_id = settings.gdrive_parent_folder_id
        self.subject = settings.gdrive_impersonate_email or None

        self._access_token: Optional[str] = None
        self._expires_at: float = 0
        self._folder_checked = False

    # ── OAuth ─────────────────────────────────────────────────────────

    def _assertion(self, now: int) -> str:
        claims = {
            "iss": self.client_email,
            "scope": DRIVE_SCOPE,
            "aud": GOOGLE_TOKEN_URL,
            "iat": now,
            "exp": now + TOKEN_LIFETIME,
        }
        if self.subject:
            claims["sub"] = self.subject
        return jwt.encode(claims, self.private_key, algorithm="RS256")

    async def _token(self) -> str:
        now = int(time.time())
        # Refresh 5 minutes before expiry
        if self._access_token and now < self._expires_at - 300:
            return self._access_token

        resp = await self._client.post(
            GOOGLE_TOKEN_URL,
            data={
                "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                "assertion": self._assertion(now),
            },
        )
        if resp.status_code != 200:
            logger.error("Drive token exchange failed (%d): %s", resp.status_code, resp.text[:500])
            raise UploadError(self.name, "-", f"token exchange failed ({resp.status_code})")

        data = resp.json()
        self._access_token = data["access_token"]
        self._expires_at = now + int(data.get("expires_in", TOKEN_LIFETIME))
        return self._access_token

    # ── Folder check ──────────────────────────────────────────────────

    async def _check_folder(self, headers: dict[str, str]) -> None:
        if self._folder_checked:
            return

        resp = await self._client.get(
            f"{DRIVE_API_BASE}/files/{self.parent_folder_id}",
            params={"fields": "id,name,driveId", "supportsAllDrives": "true"},
            headers=headers,
        )
        if resp.status_code != 200:
            logger.error("Drive folder lookup failed (%d): %s", resp.status_code, resp.text[:300])
            raise UploadError(self.name, "-", f"folder lookup failed ({resp.status_code})")

        is_shared_drive = bool(resp.json().get("driveId"))
        if not is_shared_drive and not self.subject:
            raise ConfigurationError(
                "Target folder is not in a Shared Drive. Service accounts lack personal storage; "
                "either use a Shared Drive folder or configure domain-wide delegation "
                "(set GDRIVE_IMPERSONATE_EMAIL)."
            )
        self._folder_checked = True

    # ── Upload ────────────────────────────────────────────────────────

    async def upload(self, data: bytes, filename: str, content_type: str = "") -> UploadResult:
        headers = {"Authorization": f"Bearer {await self._token()}"}
        await self._check_folder(headers)

        # Step 1: initiate resumable upload
        metadata = {"name": filename, "parents": [self.parent_folder_id], "mimeType": UPLOAD_MIME_TYPE}
        init_resp = await self._client.post(
            DRIVE_UPLOAD_URL,
            params={"uploadType": "resumable", "supportsAllDrives": "true", "fields": "id,name"},
            headers={
                **headers,
                "Content-Type": "application/json; charset=UTF-8",
                "X-Upload-Content-Type": UPLOAD_MIME_TYPE,
                "X-Upload-Content-Length": str(len(data)),
            },
            content=json.dumps(metadata),
        )
        upload_url = init_resp.headers.get("Location") if init_resp.status_code == 200 else None
        if not upload_url:
            logger.error("Drive upload init failed (%d): %s", init_resp.status_code, init_resp.text[:500])
            raise UploadError(self.name, filename, f"upload init failed ({init_resp.status_code})")

        # Step 2: send the bytes
        put_resp = await self._client.put(
            upload_url,
            content=data,
            headers={**headers, "Content-Type": UPLOAD_MIME_TYPE},
        )
        if put_resp.status_code not in (200, 201):
            logger.error("Drive upload failed (%d): %s", put_resp.status_code, put_resp.text[:500])
            raise UploadError(self.name, filename, f"upload failed ({put_resp.status_code})")
        file_id = put_resp.json()["id"]

        # Step 3: anyone with the link can view
        perm_resp = await self._client.post(
            f"{DRIVE_API_BASE}/files/{file_id}/permissions",
            params={"supportsAllDrives": "true"},
            headers=headers,
            json={"type": "anyone", "role": "reader"},
        )
        if not perm_resp.is_success:
            logger.error("Drive permission failed (%d): %s", perm_resp.status_code, perm_resp.text[:300])
            await self._discard(file_id, headers)
            raise UploadError(self.name, filename, f"permission failed ({perm_resp.status_code}), file_id={file_id}")

        logger.info("Uploaded to Drive: %s → %s (%d bytes)", filename, file_id, len(data))
        return UploadResult(filename=filename, url=direct_download_url(file_id), token=file_id)

    async def _discard(self, file_id: str, headers: dict[str, str]) -> None:
        """Delete a file that could not be shared, so it is not orphaned in the folder."""
        try:
            resp = await self._client.delete(
                f"{DRIVE_API_BASE}/files/{file_id}",
                params={"supportsAllDrives": "true"},
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.warning("Orphaned Drive file %s (delete failed: %s)", file_id, e)
            return
        if not resp.is_success:
            logger.warning("Orphaned Drive file %s (delete failed: %d)", file_id, resp.status_code)
