"""Table definitions: programs, terms, lessons and their assets.

Check constraints mirror the lesson invariants so the database refuses a
row the state machine would never produce:

* a video lesson has a duration;
* a scheduled lesson has ``publish_at``;
* a published lesson has ``published_at``.

``ix_lessons_status_publish_at`` backs the coordinator's due-lesson query.

Tags:
    lesson-spine, orm, sqlalchemy, tables
"""

from __future__ import annotations

import datetime
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from lesson_spine.core.enums import (
    AssetType,
    AssetVariant,
    ContentType,
    LessonStatus,
    ProgramStatus,
)
from lesson_spine.core.orm.base import LessonSpineBase, TimestampMixin


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Portable enum column stored as its string value (VARCHAR + CHECK)."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        length=16,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class ProgramTable(TimestampMixin, LessonSpineBase):
    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    language_primary: Mapped[str] = mapped_column(Text, nullable=False)
    languages_available: Mapped[list] = mapped_column(nullable=False)
    status: Mapped[ProgramStatus] = mapped_column(
        _enum_column(ProgramStatus, "program_status"),
        nullable=False,
        default=ProgramStatus.DRAFT,
    )
    published_at: Mapped[datetime.datetime | None] = mapped_column()

    __table_args__ = (
        Index("ix_programs_status_published_at", "status", "published_at"),
    )


class TermTable(LessonSpineBase):
    __tablename__ = "terms"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    program_id: Mapped[str] = mapped_column(
        Text, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False
    )
    term_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint("program_id", "term_number", name="uq_terms_program_term_number"),
    )


class LessonTable(TimestampMixin, LessonSpineBase):
    __tablename__ = "lessons"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    term_id: Mapped[str] = mapped_column(
        Text, ForeignKey("terms.id", ondelete="CASCADE"), nullable=False
    )
    lesson_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[ContentType] = mapped_column(
        _enum_column(ContentType, "lesson_content_type"), nullable=False
    )
    duration_ms: Mapped[int | None] = mapped_column(Integer)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    content_language_primary: Mapped[str] = mapped_column(Text, nullable=False)
    content_languages_available: Mapped[list] = mapped_column(nullable=False)
    content_urls_by_language: Mapped[dict] = mapped_column(nullable=False)

    subtitle_languages: Mapped[list | None] = mapped_column()
    subtitle_urls_by_language: Mapped[dict | None] = mapped_column()

    status: Mapped[LessonStatus] = mapped_column(
        _enum_column(LessonStatus, "lesson_status"),
        nullable=False,
        default=LessonStatus.DRAFT,
    )
    publish_at: Mapped[datetime.datetime | None] = mapped_column()
    published_at: Mapped[datetime.datetime | None] = mapped_column()

    __table_args__ = (
        UniqueConstraint("term_id", "lesson_number", name="uq_lessons_term_lesson_number"),
        CheckConstraint(
            "content_type <> 'video' OR duration_ms IS NOT NULL",
            name="ck_lessons_video_duration",
        ),
        CheckConstraint(
            "status <> 'scheduled' OR publish_at IS NOT NULL",
            name="ck_lessons_scheduled_publish_at",
        ),
        CheckConstraint(
            "status <> 'published' OR published_at IS NOT NULL",
            name="ck_lessons_published_at",
        ),
        Index("ix_lessons_status_publish_at", "status", "publish_at"),
    )


class ProgramAssetTable(LessonSpineBase):
    __tablename__ = "program_assets"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    program_id: Mapped[str] = mapped_column(
        Text, ForeignKey("programs.id", ondelete="CASCADE"), nullable=False
    )
    language: Mapped[str] = mapped_column(Text, nullable=False)
    variant: Mapped[AssetVariant] = mapped_column(
        _enum_column(AssetVariant, "asset_variant"), nullable=False
    )
    asset_type: Mapped[AssetType] = mapped_column(
        _enum_column(AssetType, "program_asset_type"), nullable=False
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "program_id", "language", "variant", "asset_type", name="uq_program_assets_key"
        ),
        Index("ix_program_assets_program_language", "program_id", "language"),
    )


class LessonAssetTable(LessonSpineBase):
    __tablename__ = "lesson_assets"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    lesson_id: Mapped[str] = mapped_column(
        Text, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False
    )
    language: Mapped[str] = mapped_column(Text, nullable=False)
    variant: Mapped[AssetVariant] = mapped_column(
        _enum_column(AssetVariant, "lesson_asset_variant"), nullable=False
    )
    asset_type: Mapped[AssetType] = mapped_column(
        _enum_column(AssetType, "lesson_asset_type"), nullable=False
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "lesson_id", "language", "variant", "asset_type", name="uq_lesson_assets_key"
        ),
        Index("ix_lesson_assets_lesson_language", "lesson_id", "language"),
    )


__all__ = [
    "LessonAssetTable",
    "LessonTable",
    "ProgramAssetTable",
    "ProgramTable",
    "TermTable",
]
