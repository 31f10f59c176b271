import secrets
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Required in production:
      - SESSION_SECRET (auto-generated for development)
      - CODE_EXPLORER_PASSWORD (login is impossible while unset)

    Optional:
      - APP_ENV: "production" turns on the Secure cookie flag
      - AUDIT_LOG_PATH: durable audit log file
      - GITHUB_TOKEN / GITHUB_OWNER / GITHUB_REPO / GITHUB_BRANCH: repository to expose
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    environment: Literal["development", "production", "test"] = Field(
        default="development",
        validation_alias="APP_ENV",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, validation_alias="LOG_FILE")

    # Session cookie settings
    session_secret: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        validation_alias="SESSION_SECRET",
        description="Secret key for signing the session cookie. MUST be set in production.",
    )
    access_password: str = Field(
        default="",
        validation_alias="CODE_EXPLORER_PASSWORD",
        description="Single shared password guarding the explorer",
    )
    session_cookie_name: str = "code_explorer_session"
    session_max_age_seconds: int = Field(
        default=60 * 60,
        description="Cookie max-age in seconds (default 1 hour)",
    )
    session_inactivity_seconds: int = Field(
        default=60 * 60,
        description="Inactivity limit before a session expires (default 1 hour)",
    )

    # Audit log
    audit_log_path: str = Field(
        default="data/audit-logs.json",
        validation_alias="AUDIT_LOG_PATH",
    )
    audit_buffer_size: int = Field(default=50, ge=1)
    audit_flush_interval_seconds: float = Field(default=5 * 60, gt=0)
    audit_retention: int = Field(default=1000, ge=1)

    # Rate limiter housekeeping
    rate_limit_sweep_interval_seconds: float = Field(default=10 * 60, gt=0)
    rate_limit_stale_after_seconds: float = Field(default=60, gt=0)

    # Remote repository (GitHub)
    github_token: str = Field(default="", validation_alias="GITHUB_TOKEN")
    github_owner: str = Field(default="", validation_alias="GITHUB_OWNER")
    github_repo: str = Field(default="", validation_alias="GITHUB_REPO")
    github_branch: str = Field(default="main", validation_alias="GITHUB_BRANCH")
    github_api_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_API_URL",
    )
    github_timeout: float = 15.0
    repository_cache_ttl_seconds: float = 5 * 60

    # File view truncation (bytes) unless the caller asks for the full file
    view_max_bytes: int = 50 * 1024

    # Only enable behind a reverse proxy that overwrites X-Forwarded-For
    trust_proxy_headers: bool = Field(default=False, validation_alias="TRUST_PROXY_HEADERS")

    # Comma-separated list of allowed frontend origins
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("session_secret")
    @classmethod
    def _secret_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("SESSION_SECRET must not be empty")
        return value

    @property
    def cookie_secure(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
