"""
Client-held form state for one onboarding session.

FormState mirrors the browser form: scalar fields, the nested `links`
mapping and a per-slot count of staged files. Raw file bytes live next to it
as StagedFile objects (the file inputs of the form element), never inside it.
"""

from dataclasses import dataclass, field, fields
from typing import Iterator, Optional, Union

# File-input names accepted by the intake endpoint
FILE_SLOTS = (
    "brandVoiceFile",
    "salesPitchFile",
    "offerInfoFile",
    "brandFAQFile",
    "productFAQFile",
    "salesGuideFile",
    "leadQualificationFile",
    "accessDocs",
)

# Content fields that may be satisfied by text OR an uploaded file
CONTENT_SLOTS = {
    "brandVoice": "brandVoiceFile",
    "salesPitch": "salesPitchFile",
    "offerInfo": "offerInfoFile",
    "brandFAQ": "brandFAQFile",
    "productFAQ": "productFAQFile",
    "salesGuide": "salesGuideFile",
    "leadQualification": "leadQualificationFile",
}

LINK_FIELDS = ("landingPages", "calendars", "webinarLinks", "formsSurveys", "otherAssets")


@dataclass
class StagedFile:
    field: str
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


# ── Text-or-file content ─────────────────────────────────────────────

@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class FileRef:
    slot: str
    count: int


@dataclass(frozen=True)
class Empty:
    pass


Content = Union[Text, FileRef, Empty]


def is_satisfied(content: Content) -> bool:
    return isinstance(content, (Text, FileRef))


def normalize_instagram(v: str) -> str:
    """Handles are stored without "@"; the UI prefixes it on display."""
    return v.replace("@", "")


# ── Form state ───────────────────────────────────────────────────────

@dataclass
class FormState:
    companyName: str = ""
    contactName: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    instagram: str = ""
    crm: str = ""
    emailPlatform: str = ""
    links: dict[str, str] = field(default_factory=lambda: {k: "" for k in LINK_FIELDS})

    # long-form text fields
    brandVoice: str = ""
    salesPitch: str = ""
    offerInfo: str = ""
    brandFAQ: str = ""
    productFAQ: str = ""
    salesGuide: str = ""
    leadQualification: str = ""
    credentials: str = ""
    notes: str = ""
    loomUrl: str = ""

    # phone component parts
    phoneCountryCode: str = ""
    phoneNational: str = ""
    phoneE164: str = ""

    file_counts: dict[str, int] = field(default_factory=dict)
    field_errors: dict[str, str] = field(default_factory=dict)
    submitting: bool = False

    def set(self, name: str, value: str) -> None:
        """Apply one input change. `links.<key>` names update the nested mapping."""
        if name.startswith("links."):
            key = name.split(".", 1)[1]
            if key not in LINK_FIELDS:
                raise KeyError(name)
            self.links[key] = value
            return
        if name not in _SCALAR_FIELDS:
            raise KeyError(name)
        if name == "instagram":
            value = normalize_instagram(value)
        setattr(self, name, value)

    def stage(self, slot: str, count: int) -> None:
        if slot not in FILE_SLOTS:
            raise KeyError(slot)
        if count > 0:
            self.file_counts[slot] = count
        else:
            self.file_counts.pop(slot, None)

    def file_count(self, slot: str) -> int:
        return self.file_counts.get(slot, 0)

    def content_for(self, name: str) -> Content:
        text = getattr(self, name)
        if text:
            return Text(text)
        slot = CONTENT_SLOTS[name]
        count = self.file_count(slot)
        if count > 0:
            return FileRef(slot, count)
        return Empty()

    def to_form_fields(self) -> Iterator[tuple[str, str]]:
        """Scalar and `links.*` parts, in the order the browser re-appends them."""
        for name in _SCALAR_FIELDS:
            value = getattr(self, name)
            yield name, normalize_instagram(value) if name == "instagram" else value
        for key in LINK_FIELDS:
            yield f"links.{key}", self.links.get(key, "")

    def reset(self) -> None:
        fresh = FormState()
        for f in fields(self):
            if f.name == "submitting":
                continue
            setattr(self, f.name, getattr(fresh, f.name))


_SCALAR_FIELDS = tuple(
    f.name for f in fields(FormState)
    if f.name not in ("links", "file_counts", "field_errors", "submitting")
)


def files_for(staged: list[StagedFile], slot: Optional[str] = None) -> list[StagedFile]:
    """Non-empty staged files, optionally restricted to one slot."""
    return [s for s in staged if s.size > 0 and (slot is None or s.field == slot)]
