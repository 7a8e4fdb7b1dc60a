"""Configuration management for taskboard."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/taskboard.db", description="Path to the SQLite database file")
    db_connect_max_retries: int = Field(default=5, description="Connection attempts before startup gives up")
    db_connect_base_delay_seconds: float = Field(
        default=0.5, description="Base delay for exponential backoff between connection attempts"
    )

    # Auth Configuration
    secret_key: str | None = Field(default=None, description="Secret used to sign bearer tokens")
    token_max_age_seconds: int = Field(default=30 * 24 * 3600, description="Bearer token lifetime (in seconds)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Runtime Configuration
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Include internal error details in API responses")
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_BAD_REQUEST: int = 400
    HTTP_NOT_FOUND: int = 404
    HTTP_SERVER_ERROR: int = 500

    # Collections
    TASKS_COLLECTION: str = "tasks"

    # Listing
    DEFAULT_SORT: str = "+id"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
