import base64
from io import BytesIO

import httpx
import pytest
from starlette.datastructures import FormData, Headers, UploadFile

from intake.core.errors import RecordStoreError, UploadError
from intake.core.flags import FeatureFlags
from intake.services.airtable import AirtableClient
from intake.services.intake_service import IntakeService, reconcile_phone
from intake.storage.base import Uploader, UploadResult

from conftest import json_body


class ScriptedUploader(Uploader):
    """Fails for the fields listed in `fail_fields`, succeeds otherwise."""

    name = "scripted"

    def __init__(self, fail_fields=(), with_url=True):
        self.fail_fields = set(fail_fields)
        self.with_url = with_url
        self.calls = []

    async def upload(self, data, filename, content_type=""):
        self.calls.append(filename)
        stem = filename.split(".")[0]
        if stem in self.fail_fields:
            raise UploadError(self.name, filename, "boom")
        url = f"https://cdn.example/{filename}" if self.with_url else None
        return UploadResult(filename=filename, url=url, token=f"tok-{stem}")


def upload_file(name: str, content: bytes, content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(
        file=BytesIO(content),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


def form(*files, **fields) -> FormData:
    items = [(k, v) for k, v in fields.items()]
    items += list(files)
    return FormData(items)


def airtable_routes(fake_api, record=None, create_status=200):
    fake_api.on("POST", "api.airtable.com/v0/appBase/Intake", httpx.Response(
        create_status, json=record or {"records": [{"id": "recNEW", "fields": {}}]},
    ))
    fake_api.on("GET", "/meta/bases/appBase/tables", httpx.Response(200, json={"tables": [
        {"id": "tblIntake", "name": "Intake", "fields": [{"id": "fldAtt", "name": "Attachments"}]},
    ]}))
    fake_api.on("POST", "/uploadAttachment", httpx.Response(200, json={}))


def service(fake_api, settings, flags, uploader):
    return IntakeService(AirtableClient(fake_api.client(), settings), uploader, settings, flags)


# -------------------------
# Phone reconciliation
# -------------------------
def test_phone_prefers_e164():
    assert reconcile_phone("+15551234567", "44", "7700 900123", "raw") == "+15551234567"


def test_phone_from_country_and_national():
    assert reconcile_phone("", "+44", "(07700) 900-123", "raw") == "+4407700900123"


def test_phone_falls_back_to_raw():
    assert reconcile_phone("", "", "", "555 123") == "555 123"
    assert reconcile_phone("", "1", "", "") == ""


# -------------------------
# Payload / uploads
# -------------------------
@pytest.mark.anyio
async def test_example_submission(fake_api, settings, flags):
    airtable_routes(fake_api)
    uploader = ScriptedUploader()
    svc = service(fake_api, settings, flags, uploader)
    data = form(
        ("brandVoiceFile", upload_file("Voice Guide.pdf", b"%PDF voice")),
        companyName="Acme", contactName="Jane Doe", email="jane@acme.com", instagram="acmejane",
        brandVoice="", salesPitch="pitch text", offerInfo="offer text", brandFAQ="b", productFAQ="p",
        salesGuide="s", leadQualification="l", crm="hubspot", **{"links.calendars": "https://cal.com/acme"},
    )

    record = await svc.handle_form(data)

    assert record["id"] == "recNEW"
    assert uploader.calls == ["brandVoiceFile.pdf"]
    fields = json_body(fake_api.calls("POST", "/appBase/Intake")[0])["records"][0]["fields"]
    assert fields["Company Name"] == "Acme"
    assert fields["CRM"] == "hubspot"
    assert fields["Calendars"] == "https://cal.com/acme"
    assert fields["Attachments"] == [
        {"url": "https://cdn.example/brandVoiceFile.pdf", "filename": "brandVoiceFile.pdf"},
    ]
    assert fields["Uploaded Files"] == "brandVoiceFile: brandVoiceFile.pdf (10 bytes, application/pdf)"
    # every file was tokenized, nothing to re-attach
    assert fake_api.calls("GET", "/meta/bases") == []


@pytest.mark.anyio
async def test_empty_file_parts_are_skipped(fake_api, settings, flags):
    airtable_routes(fake_api)
    uploader = ScriptedUploader()
    svc = service(fake_api, settings, flags, uploader)

    files = await svc.upload_files(form(("accessDocs", upload_file("empty.pdf", b"")), companyName="Acme"))

    assert files == []
    assert uploader.calls == []


@pytest.mark.anyio
async def test_summary_per_file_regardless_of_outcome(fake_api, settings, flags):
    uploader = ScriptedUploader(fail_fields={"salesPitchFile"})
    svc = service(fake_api, settings, flags, uploader)

    files = await svc.upload_files(form(
        ("brandVoiceFile", upload_file("a.pdf", b"aaa")),
        ("salesPitchFile", upload_file("b.docx", b"bbbb", "application/msword")),
        ("offerInfoFile", upload_file("c.txt", b"c", "text/plain")),
    ))

    assert [f.summary.field for f in files] == ["brandVoiceFile", "salesPitchFile", "offerInfoFile"]
    assert [f.summary.token for f in files] == ["tok-brandVoiceFile", None, "tok-offerInfoFile"]
    assert [f.summary.size for f in files] == [3, 4, 1]
    assert files[1].summary.type == "application/msword"
    # the failure did not stop later uploads
    assert uploader.calls == ["brandVoiceFile.pdf", "salesPitchFile.docx", "offerInfoFile.txt"]


@pytest.mark.anyio
async def test_phone_parts_in_form(fake_api, settings, flags):
    svc = service(fake_api, settings, flags, ScriptedUploader())
    payload = svc.build_payload(form(phoneCountryCode="1", phoneNational="555-123-4567", phone="555-123-4567"), [])
    assert payload.phone == "+15551234567"


# -------------------------
# Record creation
# -------------------------
@pytest.mark.anyio
async def test_record_created_even_when_uploads_fail(fake_api, settings, flags):
    airtable_routes(fake_api)
    uploader = ScriptedUploader(fail_fields={"brandVoiceFile", "accessDocs"})
    svc = service(fake_api, settings, flags, uploader)

    record = await svc.handle_form(form(
        ("brandVoiceFile", upload_file("a.pdf", b"voice")),
        ("accessDocs", upload_file("b.pdf", b"docs")),
        companyName="Acme",
    ))

    assert record["id"] == "recNEW"
    assert len(fake_api.calls("POST", "/appBase/Intake")) == 1


@pytest.mark.anyio
async def test_record_creation_failure_propagates(fake_api, settings, flags):
    airtable_routes(fake_api, create_status=500, record={"error": "SERVER_ERROR"})
    svc = service(fake_api, settings, flags, ScriptedUploader())

    with pytest.raises(RecordStoreError):
        await svc.handle_form(form(companyName="Acme"))


@pytest.mark.anyio
async def test_json_payload_taken_as_is(fake_api, settings, flags):
    airtable_routes(fake_api)
    uploader = ScriptedUploader()
    svc = service(fake_api, settings, flags, uploader)

    await svc.handle_json({"companyName": "Acme", "productFAQ": "faq", "links": {"otherAssets": "drive"}})

    fields = json_body(fake_api.requests[0])["records"][0]["fields"]
    assert fields == {"Company Name": "Acme", "Product FAQ": "faq", "Other Assets": "drive"}
    assert uploader.calls == []


# -------------------------
# Secondary attach pass
# -------------------------
@pytest.mark.anyio
async def test_secondary_attach_only_untokenized_small_files(fake_api, settings, flags):
    airtable_routes(fake_api)
    settings.max_secondary_attach_bytes = 8
    uploader = ScriptedUploader(fail_fields={"salesPitchFile", "accessDocs"})
    svc = service(fake_api, settings, flags, uploader)

    await svc.handle_form(form(
        ("brandVoiceFile", upload_file("a.pdf", b"ok")),              # tokenized
        ("salesPitchFile", upload_file("b.txt", b"small", "text/plain")),  # failed, small
        ("accessDocs", upload_file("c.pdf", b"way too large")),       # failed, too large
        companyName="Acme",
    ))

    attach_calls = fake_api.calls("POST", "/recNEW/fldAtt/uploadAttachment")
    assert len(attach_calls) == 1
    body = json_body(attach_calls[0])
    assert body == {
        "contentType": "text/plain",
        "file": base64.b64encode(b"small").decode(),
        "filename": "salesPitchFile.txt",
    }
    # field id resolved once per request
    assert len(fake_api.calls("GET", "/meta/bases/appBase/tables")) == 1


@pytest.mark.anyio
async def test_secondary_attach_errors_are_swallowed(fake_api, settings, flags):
    fake_api.on("POST", "api.airtable.com/v0/appBase/Intake", httpx.Response(200, json={"id": "recNEW"}))
    fake_api.on("GET", "/meta/bases", httpx.Response(503, text="unavailable"))
    svc = service(fake_api, settings, flags, ScriptedUploader(fail_fields={"brandVoiceFile"}))

    record = await svc.handle_form(form(("brandVoiceFile", upload_file("a.pdf", b"voice")), companyName="Acme"))

    assert record == {"id": "recNEW"}
    assert fake_api.calls("POST", "/uploadAttachment") == []


@pytest.mark.anyio
async def test_secondary_attach_per_file_error_does_not_stop_others(fake_api, settings, flags):
    airtable_routes(fake_api)
    def flaky(request):
        if json_body(request)["filename"].startswith("brandVoiceFile"):
            return httpx.Response(500, text="nope")
        return httpx.Response(200, json={})

    fake_api._routes.insert(0, ("POST", "/recNEW/fldAtt/uploadAttachment", flaky))
    svc = service(fake_api, settings, flags, ScriptedUploader(fail_fields={"brandVoiceFile", "offerInfoFile"}))

    files = await svc.upload_files(form(
        ("brandVoiceFile", upload_file("a.pdf", b"a")),
        ("offerInfoFile", upload_file("b.pdf", b"b")),
    ))
    attached = await svc.attach_missing("recNEW", files)

    assert attached == 1
    assert len(fake_api.calls("POST", "/uploadAttachment")) == 2


@pytest.mark.anyio
async def test_secondary_attach_disabled_by_flag(fake_api, settings):
    airtable_routes(fake_api)
    flags = FeatureFlags(FF_USE_SECONDARY_ATTACH=False)
    svc = service(fake_api, settings, flags, ScriptedUploader(fail_fields={"brandVoiceFile"}))

    await svc.handle_form(form(("brandVoiceFile", upload_file("a.pdf", b"voice")), companyName="Acme"))

    assert fake_api.calls("GET", "/meta/bases") == []
    assert fake_api.calls("POST", "/uploadAttachment") == []


@pytest.mark.anyio
async def test_token_strategy_has_no_url_attachments(fake_api, settings, flags):
    airtable_routes(fake_api)
    svc = service(fake_api, settings, flags, ScriptedUploader(with_url=False))

    await svc.handle_form(form(("brandFAQFile", upload_file("faq.md", b"# FAQ", "text/markdown")), companyName="Acme"))

    fields = json_body(fake_api.calls("POST", "/appBase/Intake")[0])["records"][0]["fields"]
    assert fields["Attachments"] == [{"id": "tok-brandFAQFile"}]
