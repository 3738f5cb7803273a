"""
Airtable REST client. The intake record store.

Web API:     https://api.airtable.com/v0/{baseId}/{table}
Meta API:    https://api.airtable.com/v0/meta/bases/{baseId}/tables
Content API: https://content.airtable.com/v0/{baseId}/...

Uses raw httpx to stay consistent with the rest of the codebase (no pyairtable).
"""

import base64
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from ..core.config import Settings
from ..core.errors import RecordStoreError, require
from ..models import IntakePayload

logger = logging.getLogger(__name__)

# Column labels in the intake table
FIELD_LABELS = {
    "company_name": "Company Name",
    "contact_name": "Contact Name",
    "email": "Email",
    "phone": "Phone",
    "website": "Website",
    "instagram": "Instagram",
    "crm": "CRM",
    "email_platform": "Email Platform",
    "brand_voice": "Brand Voice",
    "sales_pitch": "Sales Pitch",
    "offer_info": "Offer Info",
    "brand_faq": "Brand FAQ",
    "product_faq": "Product FAQ",
    "sales_guide": "Sales Guide",
    "lead_qualification": "Lead Qualification",
    "credentials": "Credentials",
    "notes": "Notes",
    "loom_url": "Loom URL",
}

LINK_LABELS = {
    "landing_pages": "Landing Pages",
    "calendars": "Calendars",
    "webinar_links": "Webinar Links",
    "forms_surveys": "Forms & Surveys",
    "other_assets": "Other Assets",
}

UPLOADED_FILES_LABEL = "Uploaded Files"


class AirtableClient:
    """
    Creates intake records and attaches files to them.

    Credentials are checked in the constructor so a misconfigured deployment
    fails before the first request goes out.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self.api_key = require(settings.airtable_api_key, "AIRTABLE_API_KEY")
        self.base_id = require(settings.airtable_base_id, "AIRTABLE_BASE_ID")
        self.table_name = require(settings.airtable_table_name, "AIRTABLE_TABLE_NAME")
        self.attachments_field = settings.airtable_attachments_field
        self._api_url = settings.airtable_api_url.rstrip("/")
        self._content_url = settings.airtable_content_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    # ── Records ───────────────────────────────────────────────────────

    async def create_record(self, payload: IntakePayload) -> dict:
        """Create exactly one intake record. Returns the Airtable record object."""
        url = f"{self._api_url}/{self.base_id}/{quote(self.table_name, safe='')}"
        body = {"records": [{"fields": self.build_fields(payload)}], "typecast": True}

        resp = await self._client.post(url, json=body, headers=self._headers())
        data = _check(resp, "create record")

        record = data["records"][0] if "records" in data else data
        logger.info("Airtable record created: %s", record.get("id"))
        return record

    def build_fields(self, payload: IntakePayload) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for attr, label in FIELD_LABELS.items():
            value = getattr(payload, attr)
            if value:
                fields[label] = value
        for attr, label in LINK_LABELS.items():
            value = getattr(payload.links, attr)
            if value:
                fields[label] = value

        # URL strategies fill `attachments`; the token strategy leaves it empty
        if payload.attachments:
            attachments = [a.model_dump(exclude_none=True) for a in payload.attachments]
        else:
            attachments = [{"id": f.token} for f in payload.uploaded_files if f.token]
        if attachments:
            fields[self.attachments_field] = attachments

        if payload.uploaded_files:
            fields[UPLOADED_FILES_LABEL] = "\n".join(
                f"{f.field}: {f.name} ({f.size} bytes, {f.type or 'unknown'})"
                + ("" if f.token else " [not uploaded]")
                for f in payload.uploaded_files
            )
        return fields

    # ── Schema ────────────────────────────────────────────────────────

    async def resolve_field_id(self, table_name: str, field_label: str) -> Optional[str]:
        """Look up a field id by its label. Returns None if the table or field is unknown."""
        url = f"{self._api_url}/meta/bases/{self.base_id}/tables"
        resp = await self._client.get(url, headers=self._headers())
        data = _check(resp, "list tables")

        for table in data.get("tables", []):
            if table.get("name") != table_name and table.get("id") != table_name:
                continue
            for field in table.get("fields", []):
                if field.get("name") == field_label:
                    return field.get("id")
        return None

    # ── Content API ───────────────────────────────────────────────────

    async def attach_content(
        self,
        record_id: str,
        field: str,
        data_b64: str,
        content_type: str,
        filename: str,
    ) -> None:
        """Append a base64-encoded file to an attachment field of an existing record."""
        url = f"{self._content_url}/{self.base_id}/{record_id}/{quote(field, safe='')}/uploadAttachment"
        body = {"contentType": content_type, "file": data_b64, "filename": filename}
        resp = await self._client.post(url, json=body, headers=self._headers())
        _check(resp, "upload attachment")
        logger.info("Airtable attachment added: record=%s file=%s", record_id, filename)

    async def upload_token(self, data: bytes, filename: str, content_type: str) -> str:
        """Upload a file ahead of record creation. Returns a reusable attachment token."""
        url = f"{self._content_url}/{self.base_id}/uploadAttachment"
        body = {
            "contentType": content_type,
            "file": base64.b64encode(data).decode("ascii"),
            "filename": filename,
        }
        resp = await self._client.post(url, json=body, headers=self._headers())
        result = _check(resp, "upload token")
        token = result.get("id") or result.get("token")
        if not token:
            raise RecordStoreError("Airtable upload returned no attachment token", resp.status_code)
        return token


def record_id(record: dict) -> Optional[str]:
    """Id of a created record, whether given directly or as a `records` collection."""
    if "records" in record:
        records = record.get("records") or []
        return records[0].get("id") if records else None
    return record.get("id")


def _check(resp: httpx.Response, action: str) -> dict:
    if not resp.is_success:
        logger.error("Airtable %s failed (%d): %s", action, resp.status_code, resp.text[:500])
        raise RecordStoreError(f"Airtable {action} failed ({resp.status_code})", resp.status_code)
    return resp.json()
