"""
Token upload through Airtable's own attachment API.

Files go straight to the record store and come back as attachment tokens
that the new record references. No public URL is produced.
"""

import logging

from ..core.errors import RecordStoreError, UploadError
from ..services.airtable import AirtableClient
from .base import Uploader, UploadResult, guess_content_type

logger = logging.getLogger(__name__)


class AirtableTokenUploader(Uploader):
    name = "airtable"

    def __init__(self, record_store: AirtableClient):
        self._store = record_store

    async def upload(self, data: bytes, filename: str, content_type: str = "") -> UploadResult:
        try:
            token = await self._store.upload_token(data, filename, content_type or guess_content_type(filename))
        except RecordStoreError as e:
            raise UploadError(self.name, filename, str(e)) from e
        return UploadResult(filename=filename, token=token)
