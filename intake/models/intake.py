"""
Wire models for one onboarding submission.

Field aliases keep the browser's camelCase names (companyName, brandFAQ, ...)
so multipart parts and JSON bodies map straight onto the payload.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Links(_CamelModel):
    landing_pages: str = ""
    calendars: str = ""
    webinar_links: str = ""
    forms_surveys: str = ""
    other_assets: str = ""


class UploadedFileSummary(_CamelModel):
    """One processed attachment. `token` is set only when the primary upload succeeded."""

    field: str
    name: str
    size: int = 0
    type: str = ""
    token: Optional[str] = None


class AttachmentRef(_CamelModel):
    url: str
    filename: Optional[str] = None


class IntakePayload(_CamelModel):
    company_name: str = ""
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    instagram: str = ""
    crm: str = ""
    email_platform: str = ""
    links: Links = Field(default_factory=Links)

    brand_voice: str = ""
    sales_pitch: str = ""
    offer_info: str = ""
    brand_faq: str = Field(default="", alias="brandFAQ")
    product_faq: str = Field(default="", alias="productFAQ")
    sales_guide: str = ""
    lead_qualification: str = ""
    credentials: str = ""
    notes: str = ""
    loom_url: str = ""

    uploaded_files: list[UploadedFileSummary] = Field(default_factory=list)
    attachments: list[AttachmentRef] = Field(default_factory=list)


class SubmitResponse(BaseModel):
    ok: bool
    record: Optional[Any] = None
    error: Optional[str] = None
