"""
Centralized settings for lesson-spine.

:class:`LessonSpineSettings` is the single validated source of truth for
store, coordinator, publish-policy and logging configuration. Values come
from ``LESSON_SPINE_*`` environment variables or a ``.env`` file.

Tags:
    lesson-spine, configuration, settings, pydantic, caching, validation
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lesson_spine.core.enums import StoreBackend


class LessonSpineSettings(BaseSettings):
    """lesson-spine configuration.

    All fields can be set via ``LESSON_SPINE_*`` environment variables (e.g.
    ``LESSON_SPINE_DATABASE_URL=postgresql+psycopg://...``).
    """

    model_config = SettingsConfigDict(
        env_prefix="LESSON_SPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Store ────────────────────────────────────────────────────
    store_backend: StoreBackend = Field(default=StoreBackend.SQL)
    database_url: str = Field(default="sqlite:///data/lesson_spine.db")
    database_echo: bool = Field(default=False)
    database_pool_size: int = Field(default=5, ge=1)
    database_max_overflow: int = Field(default=10, ge=0)
    lock_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Lock wait limit for memory-store rows and SQL lock timeouts",
    )

    # ── Scheduled publishing ─────────────────────────────────────
    publish_interval_seconds: float = Field(default=60.0, gt=0)
    publish_batch_size: int | None = Field(
        default=None,
        ge=1,
        description="Max due lessons claimed per tick (unbounded when unset)",
    )
    publish_tick_on_start: bool = Field(default=True)

    # ── Publish policy ───────────────────────────────────────────
    thumbnail_waive_when_empty: bool = Field(
        default=True,
        description="Skip the thumbnail check when a lesson has no thumbnail rows at all",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    service_name: str = Field(default="lesson-spine")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


# ── Settings factory with caching ────────────────────────────────────────

_settings: LessonSpineSettings | None = None


def get_settings() -> LessonSpineSettings:
    """Get or create the cached settings instance."""
    global _settings
    if _settings is None:
        _settings = LessonSpineSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
