"""Configuration management for tarefas."""

from pathlib import Path

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

    # Database Configuration
    sqlite_db_path: str = Field(default="data/tarefas.db", description="Path to the SQLite database file")

    # Authentication Configuration
    secret_key: str | None = Field(default=None, description="Secret used to sign bearer tokens")
    token_max_age_seconds: int = Field(
        default=30 * 24 * 3600, description="Maximum age of a bearer token in seconds (30 days)"
    )

    # Server Configuration
    host: str = Field(default="127.0.0.1", description="Interface the API server binds to")
    port: int = Field(default=8000, description="Port the API server listens on")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Client Configuration
    api_base_url: str = Field(default="http://127.0.0.1:8000", description="Base URL of the tarefas API")
    api_timeout_seconds: float = Field(default=10.0, description="Per-call timeout for client requests")
    credentials_path: str = Field(
        default="data/session.json", description="Where the client persists the session token and profile"
    )
    reminder_db_path: str = Field(
        default="data/reminders.db", description="SQLite file holding scheduled reminder identifiers"
    )
    reminder_timezone: str = Field(
        default="UTC", description="IANA timezone used to compute local reminder fire times"
    )

    @property
    def is_production(self) -> bool:
        """Whether the application runs in production."""
        return self.environment.lower() == "production"

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

    def get_secret_key(self) -> str:
        """Return the token signing secret.

        Production deployments must configure SECRET_KEY; other environments
        fall back to a fixed development key.
        """
        if self.is_production:
            return self.require_credential("secret_key", "Token signing")
        return self.secret_key or "tarefas-development-secret"


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_CREATED: int = 201
    HTTP_BAD_REQUEST: int = 400
    HTTP_UNAUTHORIZED: int = 401
    HTTP_FORBIDDEN: int = 403
    HTTP_NOT_FOUND: int = 404
    HTTP_SERVER_ERROR: int = 500

    # Task Validation
    TITLE_MAX_LENGTH: int = 200
    DESCRIPTION_MAX_LENGTH: int = 1000

    # User Validation
    NAME_MAX_LENGTH: int = 100
    MIN_PASSWORD_LENGTH: int = 6

    # Password Hashing
    PASSWORD_HASH_ITERATIONS: int = 260_000
    PASSWORD_SALT_BYTES: int = 16

    # Pagination Defaults
    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100
    DEFAULT_PER_PAGE_LIMIT: int = 1000  # Upper bound for unpaginated reads (stats, expansion)

    # Reminder Scheduling
    DUE_SOON_HOUR: int = 18  # 6pm the day before the due date
    DUE_TODAY_HOUR: int = 9  # 9am on the due date
    OVERDUE_DELAY_SECONDS: int = 1
    UPCOMING_WINDOW_DAYS: int = 2

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
