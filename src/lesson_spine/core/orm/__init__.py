"""SQLAlchemy 2.0 ORM layer for lesson-spine.

Modules
-------
base        LessonSpineBase (declarative base), UtcDateTime, TimestampMixin
session     Engine factory, LessonSpineSession, session factory
tables      ProgramTable, TermTable, LessonTable, ProgramAssetTable, LessonAssetTable
"""

from __future__ import annotations

from lesson_spine.core.orm.base import LessonSpineBase, TimestampMixin, UtcDateTime
from lesson_spine.core.orm.session import (
    LessonSpineSession,
    create_store_engine,
    lesson_session_factory,
)
from lesson_spine.core.orm.tables import (
    LessonAssetTable,
    LessonTable,
    ProgramAssetTable,
    ProgramTable,
    TermTable,
)

__all__ = [
    "LessonAssetTable",
    "LessonSpineBase",
    "LessonSpineSession",
    "LessonTable",
    "ProgramAssetTable",
    "ProgramTable",
    "TermTable",
    "TimestampMixin",
    "UtcDateTime",
    "create_store_engine",
    "lesson_session_factory",
]
