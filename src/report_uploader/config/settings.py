# src/report_uploader/config/settings.py
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Graph requires every upload-session chunk except the last to be a multiple of 320 KiB
UPLOAD_CHUNK_MULTIPLE = 320 * 1024


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from report_uploader.config.settings import get_settings
        settings = get_settings()
        tenant = settings.microsoft_tenant_id
    """

    # Application Settings
    app_name: str = Field(
        default="report-uploader",
        description="Application name"
    )

    environment: str = Field(
        default="development",
        description="Runtime environment: development or production"
    )

    host: str = Field(default="0.0.0.0", description="Bind address for the API server")
    port: int = Field(default=3001, description="Port for the API server")

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    # Microsoft identity platform
    microsoft_client_id: Optional[str] = Field(
        default=None,
        description="Application (client) ID of the app registration"
    )

    microsoft_client_secret: Optional[str] = Field(
        default=None,
        description="Client secret of the app registration"
    )

    microsoft_tenant_id: Optional[str] = Field(
        default=None,
        description="Directory (tenant) ID"
    )

    redirect_uri: str = Field(
        default="http://localhost:3001/auth/callback",
        description="OAuth redirect URI registered for the app"
    )

    auth_scopes: List[str] = Field(
        default=["https://graph.microsoft.com/.default"],
        description="Delegated scopes requested at sign-in"
    )

    allowed_email_domain: Optional[str] = Field(
        default=None,
        description="If set, only users signing in as *@<domain> are accepted"
    )

    # Session / browser
    session_secret: str = Field(
        default="your-session-secret-key",
        description="Secret used to sign the session cookie"
    )

    session_max_age_seconds: int = Field(
        default=24 * 60 * 60,
        description="Session cookie lifetime"
    )

    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Browser form location; auth redirects land here"
    )

    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Origins allowed to call the API with credentials"
    )

    # Microsoft Graph
    graph_base_url: str = Field(default="https://graph.microsoft.com/v1.0")
    graph_beta_url: str = Field(default="https://graph.microsoft.com/beta")

    graph_timeout_seconds: float = Field(default=30, gt=0)
    upload_chunk_timeout_seconds: float = Field(default=120, gt=0)

    sharepoint_hostname: Optional[str] = Field(
        default="kaymet365.sharepoint.com",
        description="Hostname of the known SharePoint tenant; empty disables the site fallback"
    )

    sharepoint_site_name: str = Field(
        default="dailyreports",
        description="Site name under /sites on the known SharePoint tenant"
    )

    # Upload limits
    max_upload_size_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Largest file accepted by the upload endpoints"
    )

    simple_upload_max_bytes: int = Field(
        default=4 * 1024 * 1024,
        gt=0,
        description="Files smaller than this are sent with a single PUT"
    )

    upload_chunk_size_bytes: int = Field(
        default=10 * UPLOAD_CHUNK_MULTIPLE,
        description="Chunk size for upload sessions"
    )

    upload_chunk_max_attempts: int = Field(default=3, ge=1)

    recent_files_limit: int = Field(default=20, ge=1, le=200)

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        """Accept the usual spellings (prod, dev) and normalise case."""
        if v:
            v = str(v).strip().lower()
            mode_mapping = {"prod": "production", "dev": "development"}
            return mode_mapping.get(v, v)
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_modes = ["development", "production"]
        if v not in valid_modes:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_modes}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v):
        v = v.upper()
        valid_levels = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v

    @field_validator("sharepoint_hostname", "allowed_email_domain", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("allowed_email_domain")
    @classmethod
    def strip_at_sign(cls, v):
        if v:
            return v.lstrip("@").lower()
        return v

    @field_validator("upload_chunk_size_bytes")
    @classmethod
    def validate_chunk_size(cls, v):
        if v <= 0 or v % UPLOAD_CHUNK_MULTIPLE:
            raise ValueError(
                f"upload_chunk_size_bytes must be a positive multiple of {UPLOAD_CHUNK_MULTIPLE}"
            )
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def authority(self) -> str:
        """Authority URL for the configured tenant."""
        tenant = self.microsoft_tenant_id or "common"
        return f"https://login.microsoftonline.com/{tenant}"

    def missing_auth_settings(self) -> List[str]:
        """Names of the identity settings that still need a value."""
        required = {
            "MICROSOFT_CLIENT_ID": self.microsoft_client_id,
            "MICROSOFT_CLIENT_SECRET": self.microsoft_client_secret,
            "MICROSOFT_TENANT_ID": self.microsoft_tenant_id,
        }
        return [name for name, value in required.items() if not value]

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
