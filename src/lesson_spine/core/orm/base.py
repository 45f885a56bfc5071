"""Declarative base, column types and mixins for the lesson-spine ORM.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map`` so
mapped columns can use plain Python types.

Types
-----
* **UtcDateTime**: stores UTC, always returns timezone-aware UTC. SQLite
  drops offsets on the way in; this type puts them back on the way out so
  comparisons with ``utc_now()`` never mix naive and aware values.

Mixins
------
* **TimestampMixin**: ``created_at`` / ``updated_at`` with server defaults.
"""

from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, Text, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from lesson_spine.core.timestamps import ensure_utc


class UtcDateTime(TypeDecorator):
    """Timezone-aware UTC datetime on every backend."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        value = ensure_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        return ensure_utc(value)


class LessonSpineBase(DeclarativeBase):
    """Shared declarative base for every lesson-spine table.

    * ``str``   → ``Text``
    * ``int``   → ``Integer``
    * ``datetime.datetime`` → ``UtcDateTime``
    * ``dict`` / ``list``  → ``JSON``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        datetime.datetime: UtcDateTime,
        dict: JSON,
        list: JSON,
    }


class TimestampMixin:
    """Mixin that adds ``created_at`` and ``updated_at`` with server defaults."""

    created_at: Mapped[datetime.datetime] = mapped_column(
        UtcDateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime.datetime | None] = mapped_column(
        UtcDateTime,
        nullable=True,
        server_default=func.now(),
        onupdate=func.now(),
    )
