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
    database_url: str

    # Development mode - bypasses auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Access tokens (HS256 signed by the identity provider / login service)
    jwt_secret: str = Field(default="", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_expire_minutes: int = Field(default=60, validation_alias="JWT_EXPIRE_MINUTES")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Auto-tagging. The fetch timeout must stay below the whole-pipeline bound,
    # which must stay below the request-level budget.
    scrape_timeout: float = Field(default=5.0, gt=0, validation_alias="SCRAPE_TIMEOUT")
    auto_tag_timeout: float = Field(default=8.0, gt=0, validation_alias="AUTO_TAG_TIMEOUT")
    request_timeout: float = Field(default=30.0, gt=0, validation_alias="REQUEST_TIMEOUT")

    # Field length limits
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_tag_name_length: int = Field(default=100, validation_alias="MAX_TAG_NAME_LENGTH")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        """Ensure a hung page fetch can never outlive the request that triggered it."""
        if not self.scrape_timeout < self.auto_tag_timeout < self.request_timeout:
            raise ValueError(
                "Timeouts must satisfy SCRAPE_TIMEOUT < AUTO_TAG_TIMEOUT < REQUEST_TIMEOUT "
                f"(got {self.scrape_timeout}, {self.auto_tag_timeout}, {self.request_timeout}).",
            )
        return self

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so we must ensure it's only
        used with local development databases to prevent accidental production exposure.
        """
        if not self.dev_mode:
            return self

        parsed = urlparse(self.database_url)
        # SQLite files and in-memory databases are always local
        if parsed.scheme.startswith("sqlite"):
            return self

        hostname = parsed.hostname or ""
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
