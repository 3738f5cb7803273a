"""
Central feature flags. One file controls every external dependency.

Set via environment variables or .env file.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

STORAGE_PROVIDERS = ("cloudinary", "gdrive", "airtable")


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ── Storage ──────────────────────────────────────────────────────
    storage_provider: str = Field(default="cloudinary", alias="STORAGE_PROVIDER")
    # "cloudinary" → Files go to Cloudinary. Needs CLOUDINARY_CLOUD_NAME/API_KEY/API_SECRET.
    # "gdrive"     → Files go to a Shared Drive folder. Needs GDRIVE_SERVICE_ACCOUNT_* + GDRIVE_PARENT_FOLDER_ID.
    # "airtable"   → Files go through Airtable's attachment token upload. Needs AIRTABLE_* only.

    # ── Secondary attachment pass ────────────────────────────────────
    use_secondary_attach: bool = Field(default=True, alias="FF_USE_SECONDARY_ATTACH")
    # ON  → Files whose primary upload failed (≤ 5 MB) are attached to the
    #       created record through Airtable's content API.
    # OFF → Failed uploads are only listed in the record's file summary.


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
