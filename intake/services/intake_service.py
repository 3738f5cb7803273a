"""
Intake request handling.

Two sequential steps per submission:
  1. Primary: upload every file through the configured strategy, then create
     exactly one record. Per-file failures are tolerated; record creation is not.
  2. Secondary (best-effort): attach files that got no token in step 1 to the
     new record through Airtable's content API. Never raises.
"""

import base64
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from starlette.datastructures import FormData, UploadFile

from ..core.config import Settings
from ..core.flags import FeatureFlags
from ..models import AttachmentRef, IntakePayload, Links, UploadedFileSummary
from ..storage.base import Uploader, slot_filename
from .airtable import AirtableClient, record_id

logger = logging.getLogger(__name__)

TEXT_FIELDS = (
    "companyName", "contactName", "email", "website", "instagram", "crm",
    "emailPlatform", "brandVoice", "salesPitch", "offerInfo", "brandFAQ",
    "productFAQ", "salesGuide", "leadQualification", "credentials", "notes",
    "loomUrl",
)
LINK_FIELDS = ("landingPages", "calendars", "webinarLinks", "formsSurveys", "otherAssets")

_NON_DIGITS = re.compile(r"\D")


@dataclass
class ReceivedFile:
    """One file part held for the length of the request."""

    summary: UploadedFileSummary
    content: bytes
    url: Optional[str] = None

    @property
    def needs_attach(self) -> bool:
        return self.summary.token is None


def reconcile_phone(e164: str, country_code: str, national: str, raw: str) -> str:
    """E.164 if given, else +<country><national digits>, else the raw string."""
    if e164:
        return e164.strip()
    digits = _NON_DIGITS.sub("", national or "")
    cc = _NON_DIGITS.sub("", country_code or "")
    if cc and digits:
        return f"+{cc}{digits}"
    return raw or ""


class IntakeService:
    def __init__(
        self,
        record_store: AirtableClient,
        uploader: Uploader,
        settings: Settings,
        flags: FeatureFlags,
    ):
        self.record_store = record_store
        self.uploader = uploader
        self.max_attach_bytes = settings.max_secondary_attach_bytes
        self.use_secondary_attach = flags.use_secondary_attach

    # ── Entry points ──────────────────────────────────────────────────

    async def handle_form(self, form: FormData) -> dict:
        files = await self.upload_files(form)
        payload = self.build_payload(form, files)

        record = await self.record_store.create_record(payload)

        rid = record_id(record)
        if rid:
            await self.attach_missing(rid, files)
        return record

    async def handle_json(self, body: dict[str, Any]) -> dict:
        payload = IntakePayload.model_validate(body)
        return await self.record_store.create_record(payload)

    # ── Step 1: primary uploads ───────────────────────────────────────

    async def upload_files(self, form: FormData) -> list[ReceivedFile]:
        received: list[ReceivedFile] = []
        for key, value in form.multi_items():
            if not isinstance(value, UploadFile):
                continue
            content = await value.read()
            if not content:
                continue

            filename = slot_filename(key, value.filename or "")
            content_type = value.content_type or ""
            summary = UploadedFileSummary(field=key, name=filename, size=len(content), type=content_type)

            try:
                result = await self.uploader.upload(content, filename, content_type)
                summary.token = result.token
                url = result.url
            except Exception as e:
                # Recorded as "no token"; retried in the secondary pass
                logger.warning("Primary upload failed (%s, field=%s): %s", self.uploader.name, key, e)
                url = None

            received.append(ReceivedFile(summary=summary, content=content, url=url))
        return received

    def build_payload(self, form: FormData, files: list[ReceivedFile]) -> IntakePayload:
        def text(name: str) -> str:
            value = form.get(name)
            return value if isinstance(value, str) else ""

        fields = {name: text(name) for name in TEXT_FIELDS}
        fields["phone"] = reconcile_phone(
            text("phoneE164"), text("phoneCountryCode"), text("phoneNational"), text("phone"),
        )
        links = Links.model_validate({k: text(f"links.{k}") for k in LINK_FIELDS})

        attachments = [
            AttachmentRef(url=f.url, filename=f.summary.name)
            for f in files if f.url
        ]
        return IntakePayload.model_validate({
            **fields,
            "links": links,
            "uploadedFiles": [f.summary for f in files],
            "attachments": attachments,
        })

    # ── Step 2: secondary attach ──────────────────────────────────────

    async def attach_missing(self, rid: str, files: list[ReceivedFile]) -> int:
        """Attach untokenized files ≤ the size limit to the record. Returns how many were attached."""
        if not self.use_secondary_attach:
            return 0

        pending = [f for f in files if f.needs_attach and f.summary.size <= self.max_attach_bytes]
        if not pending:
            return 0

        attached = 0
        try:
            store = self.record_store
            field_id: Optional[str] = await store.resolve_field_id(store.table_name, store.attachments_field)
            target = field_id or store.attachments_field

            for f in pending:
                try:
                    await store.attach_content(
                        record_id=rid,
                        field=target,
                        data_b64=base64.b64encode(f.content).decode("ascii"),
                        content_type=f.summary.type or "application/octet-stream",
                        filename=f.summary.name,
                    )
                    attached += 1
                except Exception as e:
                    logger.warning("Secondary attach failed (record=%s, file=%s): %s", rid, f.summary.name, e)
        except Exception as e:
            logger.warning("Secondary attach pass skipped (record=%s): %s", rid, e)

        logger.info("Secondary attach: %d/%d files attached to %s", attached, len(pending), rid)
        return attached
