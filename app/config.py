"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Skooly"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # A full URL (DATABASE_URL_OVERRIDE, e.g. a hosted Postgres with SSL) wins over the parts
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "skooly"
    postgres_password: str = ""
    postgres_db: str = "skooly"
    db_timeout_seconds: float = 5.0

    def _postgres_url(self, scheme: str) -> str:
        if not self.database_url_override:
            return (
                f"{scheme}://{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )
        given, _, rest = self.database_url_override.partition("://")
        if not given.startswith("postgres"):
            return self.database_url_override
        return f"{scheme}://{rest}"

    @computed_field
    @property
    def database_url(self) -> str:
        """asyncpg URL for the application engine; query options are stripped (SSL goes through connect_args)."""
        return self._postgres_url("postgresql+asyncpg").split("?")[0]

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """psycopg2 URL for Alembic."""
        return self._postgres_url("postgresql")

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        url = self.database_url_override or ""
        return any(flag in url for flag in ("sslmode=require", "ssl=require"))

    # Identity provider
    # Secret (HS*) or PEM public key (RS*) used to verify session tokens
    identity_jwt_key: str
    identity_jwt_algorithm: str = "RS256"
    identity_jwt_issuer: str | None = None
    admin_user_ids: list[str] = []

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # AWS S3 (course files and videos)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_s3_bucket: str = "skooly"
    aws_s3_region: str = "us-east-2"
    aws_s3_endpoint_url: str | None = None  # Set for MinIO/LocalStack (e.g. http://localhost:9000)
    storage_public_base_url: str | None = None  # CDN in front of the bucket
    max_upload_size_bytes: int = 25 * 1024 * 1024  # 25MB

    # Anthropic API
    anthropic_api_key: str = ""

    # LLM Configuration
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 4000
    llm_short_max_tokens: int = 512
    generation_timeout_seconds: float = 60.0

    # Context limits
    material_context_max_chars: int = 8000
    chat_history_window: int = 6
    material_chat_history_window: int = 10


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """Full exception text in development, `generic_message` everywhere else."""
    if get_settings().environment != "development":
        return generic_message
    return str(error) or generic_message
