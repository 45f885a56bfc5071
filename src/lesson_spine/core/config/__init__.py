"""Centralized configuration for lesson-spine.

Architecture::

    settings.py       LessonSpineSettings (Pydantic) + get_settings() cache
    factory.py        create_store / create_coordinator / create_publish_scheduler

Guardrails:
    ❌ Parsing env vars ad-hoc in each module
    ✅ ``get_settings().database_url`` from the cached singleton
    ❌ Constructing stores and engines by hand in application code
    ✅ ``create_store(settings)`` via the factory layer
"""

from .factory import (
    create_coordinator,
    create_database_engine,
    create_publish_scheduler,
    create_status_service,
    create_store,
    create_thumbnail_policy,
)
from .settings import LessonSpineSettings, get_settings, reset_settings

__all__ = [
    "LessonSpineSettings",
    "create_coordinator",
    "create_database_engine",
    "create_publish_scheduler",
    "create_status_service",
    "create_store",
    "create_thumbnail_policy",
    "get_settings",
    "reset_settings",
]
