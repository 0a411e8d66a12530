"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = Field(validation_alias="DATABASE_URL")

    # Auth - HS256 JWTs issued by the identity provider
    jwt_secret: str = Field(default="", validation_alias="JWT_SECRET")
    jwt_audience: str = Field(default="authenticated", validation_alias="JWT_AUDIENCE")

    # Development mode - bypasses auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Base URL of this API, used by the HTTP bookmark store
    api_url: str = Field(default="http://localhost:8000", validation_alias="API_URL")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Metadata services
    title_service_url: str = Field(
        default="http://localhost:8000/get-title",
        validation_alias="TITLE_SERVICE_URL",
    )
    summary_service_url: str = Field(
        default="https://r.jina.ai/",
        validation_alias="SUMMARY_SERVICE_URL",
    )
    summary_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        validation_alias="SUMMARY_USER_AGENT",
    )
    summary_max_length: int = Field(default=400, validation_alias="SUMMARY_MAX_LENGTH")
    favicon_service_template: str = Field(
        default="https://www.google.com/s2/favicons?domain={host}&sz=32",
        validation_alias="FAVICON_SERVICE_TEMPLATE",
    )
    default_favicon: str = Field(default="/favicon.ico", validation_alias="DEFAULT_FAVICON")
    fetch_timeout: float = Field(default=10.0, validation_alias="FETCH_TIMEOUT")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so it is only allowed with a
        local database (localhost or an SQLite file).
        """
        if not self.dev_mode:
            return self

        try:
            parsed = urlparse(self.database_url)
            scheme = parsed.scheme or ""
            hostname = parsed.hostname or ""
        except Exception:
            # Unparseable URL blocks DEV_MODE
            scheme = ""
            hostname = ""

        if scheme.startswith("sqlite"):
            return self

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
