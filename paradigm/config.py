"""Engine Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): one instance per process
    - recompute_concurrency never exceeds the connection pool capacity

Design Decisions:
    - Defaults are the tuned recompute values: UNNEST, 500-row batches, 4 workers,
      COPY from 2000 rows per batch
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from paradigm.core.domain_types import WriteStrategy


class Settings(BaseSettings):
    """Engine settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://paradigm:paradigm@db:5432/paradigm"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Recompute
    recompute_batch_size: int = 500
    recompute_concurrency: int = 4
    recompute_copy_threshold: int = 2000
    recompute_default_strategy: WriteStrategy = WriteStrategy.UNNEST

    @model_validator(mode="after")
    def check_recompute_bounds(self) -> "Settings":
        if self.recompute_batch_size < 1:
            raise ValueError("recompute_batch_size must be >= 1")
        if self.recompute_concurrency < 1:
            raise ValueError("recompute_concurrency must be >= 1")
        capacity = self.database_pool_size + self.database_max_overflow
        if self.recompute_concurrency > capacity:
            raise ValueError(
                f"recompute_concurrency ({self.recompute_concurrency}) exceeds "
                f"connection capacity ({capacity})"
            )
        return self

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
