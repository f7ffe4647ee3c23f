"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Timing constants (progress delay, matching deadline) are settings, not literals

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - slack_signing_secret defaults to empty: the front door reports a configuration
      error instead of accepting unsigned traffic
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://toolfinder:toolfinder@db:5432/toolfinder"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Anthropic
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_model: str = "claude-sonnet-4-5"
    anthropic_max_tokens: int = 2048
    anthropic_max_retries: int = 1
    anthropic_timeout_seconds: int = 30
    anthropic_base_delay_ms: int = 500
    anthropic_max_delay_ms: int = 4_000

    # Slack
    slack_signing_secret: str = ""
    signature_max_age_seconds: int = 300
    site_url: str = "http://localhost:3000"

    # Pipeline timing
    progress_delay_seconds: float = 8.0
    matching_timeout_seconds: float = 25.0
    keyword_hit_limit: int = 5
    semantic_candidate_limit: int = 50
    max_suggestions: int = 3

    # Outbound HTTP
    page_text_limit: int = 8000
    page_fetch_timeout_seconds: float = 10.0
    page_max_bytes: int = 1_000_000
    notifier_timeout_seconds: float = 10.0

    # Queue worker
    queue_poll_interval_seconds: float = 1.0
    worker_concurrency: int = 4
    job_lease_seconds: int = 120
    job_max_attempts: int = 3
    run_embedded_worker: bool = True

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def problems_page_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/problems"


@lru_cache
def get_settings() -> Settings:
    return Settings()
