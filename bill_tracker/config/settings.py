"""
Configuration Management for Bill Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each external collaborator (Firestore, Cloudinary, Google Sheets) gets its
own settings class and env prefix, so a missing credential for one service
never prevents the others from loading.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirebaseSettings(BaseSettings):
    """Firestore ledger store configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore"
    )
    
    project_id: Optional[str] = Field(
        default=None,
        description="Firebase project ID (resolved from ADC when absent)"
    )
    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a service account JSON; ADC is used when absent"
    )
    users_collection: str = Field(
        default="users",
        description="Top-level collection holding one document per user"
    )
    bills_collection: str = Field(
        default="bills",
        description="Per-user sub-collection holding ledger entries"
    )


class CloudinarySettings(BaseSettings):
    """Cloudinary attachment store configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="CLOUDINARY_",
        extra="ignore"
    )
    
    cloud_name: str = Field(
        ...,
        description="Cloudinary cloud name"
    )
    api_key: str = Field(
        ...,
        description="Cloudinary API key"
    )
    api_secret: str = Field(
        ...,
        description="Cloudinary API secret"
    )
    folder: str = Field(
        default="bills",
        description="Folder that receives uploaded attachments"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets export and audit configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )
    
    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    
    # Sheet names within the spreadsheet
    export_sheet_name: str = Field(
        default="Export",
        description="Name of the sheet that receives ledger exports"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )
    
    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class LedgerSettings(BaseSettings):
    """
    Ledger behaviour settings.
    
    Loads configuration from environment variables and .env file.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    
    # Schema
    require_title: bool = Field(
        default=True,
        description=(
            "Reject drafts without a title. Disable only to accept the "
            "legacy untitled entry shape."
        )
    )
    
    # Attachment limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum attachment size in MB"
    )
    allowed_attachment_types: str = Field(
        default="image/jpeg,image/png,image/webp,image/gif,application/pdf",
        description="Comma-separated list of accepted attachment MIME types"
    )
    
    # Display
    currency_symbol: str = Field(
        default="$",
        max_length=3,
        description="Currency symbol used in audit descriptions"
    )
    
    @property
    def allowed_attachment_types_list(self) -> list[str]:
        """Get accepted attachment types as a list."""
        return [t.strip().lower() for t in self.allowed_attachment_types.split(",") if t.strip()]
    
    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.
    
    Aggregates all sub-settings for easy access.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    # Sub-settings are loaded lazily so a partially configured
    # environment can still run the parts it has credentials for.
    
    @property
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()
    
    @property
    def cloudinary(self) -> CloudinarySettings:
        return CloudinarySettings()
    
    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()
    
    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).
    
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.
    
    Returns a dict of {setting_name: is_valid} plus an
    ``<name>_error`` entry for every service that failed to load.
    """
    results: dict[str, object] = {}
    settings = get_settings()
    
    for name in ("firebase", "cloudinary", "google_sheets", "ledger"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    
    return results
