"""
Field-completion validator.

Pure functions over FormState:
  - section_completed() → advisory per-section completion for the accordion UI
  - validate_field()    → per-keystroke error messages
  - validate_required() → ordered submit-time gate, first failure wins
"""

import re
from dataclasses import dataclass
from typing import Optional

from .state import FormState, is_satisfied, normalize_instagram

EMAIL_RE = re.compile(r".+@.+\..+")
PHONE_RE = re.compile(r"^\+?[0-9()\-\s]{7,20}$")
INSTAGRAM_RE = re.compile(r"^[a-zA-Z0-9._]{1,30}$")
URL_RE = re.compile(
    r"^(https?://)?([\w-]+\.)+[\w-]{2,}(/[\w\-._~:/?#\[\]@!$&'()*+,;=.]+)?$",
    re.ASCII,
)

SECTION_TITLES = (
    "Brand Info",
    "Voice & Offers",
    "FAQs",
    "Tech",
    "Notes",
)

EMAIL_ERROR = "Enter a valid email address"
PHONE_ERROR = "Enter a valid phone number"
INSTAGRAM_ERROR = "Use letters/numbers/._ (max 30); @ is added automatically"
URL_ERROR = "Enter a valid URL"


def is_valid_email(v: str) -> bool:
    return bool(EMAIL_RE.search(v))


def is_valid_phone(v: str) -> bool:
    return bool(PHONE_RE.match(v))


def is_valid_instagram(v: str) -> bool:
    return bool(INSTAGRAM_RE.match(v)) and not v.endswith(".")


def is_valid_url(v: str) -> bool:
    return bool(URL_RE.match(v))


# ── Section completion ───────────────────────────────────────────────

def section_completed(state: FormState, index: int) -> bool:
    if index == 0:
        if not state.companyName or not state.contactName:
            return False
        if not state.email or not is_valid_email(state.email):
            return False
        handle = normalize_instagram(state.instagram)
        if not handle or not is_valid_instagram(handle):
            return False
        if state.phone and not is_valid_phone(state.phone):
            return False
        if state.website and not is_valid_url(state.website):
            return False
        return True
    if index == 1:
        return all(is_satisfied(state.content_for(n)) for n in ("brandVoice", "salesPitch", "offerInfo"))
    if index == 2:
        return all(
            is_satisfied(state.content_for(n))
            for n in ("brandFAQ", "productFAQ", "salesGuide", "leadQualification")
        )
    if index == 3:
        # Other tech fields are optional and never block completion
        return bool(state.crm)
    if index == 4:
        if state.loomUrl and not is_valid_url(state.loomUrl):
            return False
        return bool(state.notes or state.loomUrl)
    return False


def completed_sections(state: FormState) -> list[bool]:
    return [section_completed(state, i) for i in range(len(SECTION_TITLES))]


# ── Per-field errors ─────────────────────────────────────────────────

def validate_field(errors: dict[str, str], name: str, value: str) -> None:
    """Set or clear the error for one field. Empty values always clear."""
    if name == "email":
        _set_error(errors, name, not value or is_valid_email(value), EMAIL_ERROR)
    elif name == "phone":
        _set_error(errors, name, not value or is_valid_phone(value), PHONE_ERROR)
    elif name == "instagram":
        stripped = normalize_instagram(value)
        _set_error(errors, name, not stripped or is_valid_instagram(stripped), INSTAGRAM_ERROR)
    elif name in ("website", "loomUrl"):
        _set_error(errors, name, not value or is_valid_url(value), URL_ERROR)


def _set_error(errors: dict[str, str], name: str, ok: bool, message: str) -> None:
    if ok:
        errors.pop(name, None)
    else:
        errors[name] = message


def update_field(state: FormState, name: str, value: str) -> None:
    """Input change handler: store the value, then refresh its error message."""
    state.set(name, value)
    validate_field(state.field_errors, name, value)


# ── Submit-time gate ─────────────────────────────────────────────────

@dataclass(frozen=True)
class ValidationFailure:
    field: str
    message: str
    section: int


# (field, message, section) in the order they are checked
REQUIRED_CONTENT = (
    ("brandVoice", "Brand Voice Guide is required (paste or upload)", 1),
    ("salesPitch", "Sales Pitch Script is required (paste or upload)", 1),
    ("offerInfo", "Offer Information is required (paste or upload)", 1),
    ("brandFAQ", "Brand FAQ is required (paste or upload)", 2),
    ("productFAQ", "Product FAQ is required (paste or upload)", 2),
    ("salesGuide", "Sales Guide is required (paste or upload)", 2),
    ("leadQualification", "Lead Qualification criteria is required (paste or upload)", 2),
)


def validate_required(state: FormState) -> Optional[ValidationFailure]:
    handle = normalize_instagram(state.instagram)
    if not handle:
        return ValidationFailure("instagram", "Instagram Handle is required", 0)
    if not is_valid_instagram(handle):
        return ValidationFailure("instagram", INSTAGRAM_ERROR, 0)

    for name, message, section in REQUIRED_CONTENT:
        if not is_satisfied(state.content_for(name)):
            return ValidationFailure(name, message, section)
    return None
