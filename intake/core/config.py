"""
Central configuration. All credentials and settings in one place.
"""

from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Environment ---
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # --- Airtable (record store) ---
    airtable_api_key: str = Field(default="", alias="AIRTABLE_API_KEY")
    airtable_base_id: str = Field(default="", alias="AIRTABLE_BASE_ID")
    airtable_table_name: str = Field(default="Intake", alias="AIRTABLE_TABLE_NAME")
    airtable_attachments_field: str = Field(default="Attachments", alias="AIRTABLE_ATTACHMENTS_FIELD")
    airtable_api_url: str = Field(default="https://api.airtable.com/v0", alias="AIRTABLE_API_URL")
    airtable_content_url: str = Field(
        default="https://content.airtable.com/v0",
        alias="AIRTABLE_CONTENT_URL",
    )

    # --- Cloudinary ---
    cloudinary_cloud_name: str = Field(default="", alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: str = Field(default="", alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str = Field(default="", alias="CLOUDINARY_API_SECRET")
    cloudinary_folder: str = Field(default="sob-intake", alias="CLOUDINARY_FOLDER")

    # --- Google Drive (service account) ---
    gdrive_service_account_email: str = Field(default="", alias="GDRIVE_SERVICE_ACCOUNT_EMAIL")
    gdrive_service_account_private_key: str = Field(default="", alias="GDRIVE_SERVICE_ACCOUNT_PRIVATE_KEY")
    gdrive_parent_folder_id: str = Field(default="", alias="GDRIVE_PARENT_FOLDER_ID")
    gdrive_impersonate_email: str = Field(default="", alias="GDRIVE_IMPERSONATE_EMAIL")

    # --- Secondary attachment pass ---
    max_secondary_attach_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_SECONDARY_ATTACH_BYTES")

    # --- API ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    @field_validator("gdrive_service_account_private_key")
    @classmethod
    def _unescape_newlines(cls, v: str) -> str:
        # Keys pasted into a single env line arrive with literal "\n"
        return v.replace("\\n", "\n")


@lru_cache
def get_settings() -> Settings:
    return Settings()
