"""
Service configuration from environment variables using Pydantic BaseSettings.

All configuration values are loaded from environment variables (or a .env
file) at startup. No hardcoded credentials.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-001)
- 2026-10-04: Add import source settings (STORY-004)
- 2026-10-07: Add REGISTER_CODE_POLICY and PAGINATION_OVERFLOW (STORY-008)
"""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Public measurement dumps the store is seeded from.
DEFAULT_SOURCE_URLS = (
    "https://exnaton-public-s3-bucket20230329123331528000000001.s3.eu-central-1"
    ".amazonaws.com/challenge/95ce3367-cbce-4a4d-bbe3-da082831d7bd.json,"
    "https://exnaton-public-s3-bucket20230329123331528000000001.s3.eu-central-1"
    ".amazonaws.com/challenge/1db7649e-9342-4e04-97c7-f0ebb88ed1f8.json"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        DATABASE_URL: PostgreSQL connection string (asyncpg).
        REDIS_URL: Redis connection string.
        CACHE_TTL_S: Redis cache TTL in seconds.
        IMPORT_SOURCE_URLS: Comma-separated URLs of the measurement dumps.
        IMPORT_TIMEOUT_S: Timeout in seconds for each dump request.
        REGISTER_CODE_POLICY: How records with several register codes are
            handled ("strict" rejects them, "first_match" keeps the first).
        PAGINATION_OVERFLOW: Page boundary rule for collapsed queries
            ("raw" or "bucket").
        LOG_LEVEL: Root logger level.
    """

    DATABASE_URL: str
    REDIS_URL: str
    CACHE_TTL_S: int = 5
    IMPORT_SOURCE_URLS: str = DEFAULT_SOURCE_URLS
    IMPORT_TIMEOUT_S: float = 30.0
    REGISTER_CODE_POLICY: Literal["strict", "first_match"] = "strict"
    PAGINATION_OVERFLOW: Literal["raw", "bucket"] = "raw"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("IMPORT_TIMEOUT_S")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """Validate the upstream timeout is strictly positive."""
        if v <= 0:
            raise ValueError("IMPORT_TIMEOUT_S must be > 0")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def log_level_upper(cls, v: str) -> str:
        """Normalize the log level name to upper case."""
        return v.strip().upper()

    @property
    def source_urls(self) -> list[str]:
        """Configured dump URLs with blanks removed."""
        return [u.strip() for u in self.IMPORT_SOURCE_URLS.split(",") if u.strip()]


def get_settings() -> Settings:
    """Create and return a Settings instance.

    Returns:
        Settings: Validated configuration from environment variables.
    """
    return Settings()
