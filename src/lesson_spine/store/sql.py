"""SQLAlchemy-backed publication store.

One ``LessonSpineSession`` per transaction scope. Locked reads use
``SELECT ... FOR UPDATE``; due-lesson claiming adds ``SKIP LOCKED`` so
several pollers against one PostgreSQL database partition the due set
between them. SQLite compiles both clauses away and serializes writers on
its database lock instead, which keeps the same outcomes for a single
process.

Conditional writes are single ``UPDATE ... WHERE <guard>`` statements; the
affected row count decides between the updated record and ``None``.

Tags:
    lesson-spine, store, sqlalchemy, skip-locked, transactions
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, literal, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lesson_spine.core.enums import AssetOwner, AssetType, AssetVariant, LessonStatus, ProgramStatus
from lesson_spine.core.errors import ConflictError, InternalFailureError
from lesson_spine.core.logging import get_logger
from lesson_spine.core.models import AssetRecord, LessonRecord, ProgramRecord, TermRecord
from lesson_spine.core.orm.base import LessonSpineBase, UtcDateTime
from lesson_spine.core.orm.session import lesson_session_factory
from lesson_spine.core.orm.tables import (
    LessonAssetTable,
    LessonTable,
    ProgramAssetTable,
    ProgramTable,
    TermTable,
)

logger = get_logger(__name__)


# =============================================================================
# Row <-> record conversion
# =============================================================================


def _program_record(row: ProgramTable) -> ProgramRecord:
    return ProgramRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        language_primary=row.language_primary,
        languages_available=tuple(row.languages_available or ()),
        status=ProgramStatus(row.status),
        published_at=row.published_at,
    )


def _term_record(row: TermTable) -> TermRecord:
    return TermRecord(
        id=row.id,
        program_id=row.program_id,
        term_number=row.term_number,
        title=row.title,
    )


def _lesson_record(row: LessonTable) -> LessonRecord:
    return LessonRecord(
        id=row.id,
        term_id=row.term_id,
        lesson_number=row.lesson_number,
        title=row.title,
        content_type=row.content_type,
        duration_ms=row.duration_ms,
        is_paid=row.is_paid,
        content_language_primary=row.content_language_primary,
        content_languages_available=tuple(row.content_languages_available or ()),
        content_urls_by_language=dict(row.content_urls_by_language or {}),
        subtitle_languages=(
            tuple(row.subtitle_languages) if row.subtitle_languages is not None else None
        ),
        subtitle_urls_by_language=row.subtitle_urls_by_language,
        status=LessonStatus(row.status),
        publish_at=row.publish_at,
        published_at=row.published_at,
    )


def _asset_table(owner: AssetOwner) -> tuple[Any, Any]:
    """Table class and owner-id column for an asset owner."""
    match owner:
        case AssetOwner.PROGRAM:
            return ProgramAssetTable, ProgramAssetTable.program_id
        case AssetOwner.LESSON:
            return LessonAssetTable, LessonAssetTable.lesson_id


def _asset_record(owner: AssetOwner, owner_id: str, row: Any) -> AssetRecord:
    return AssetRecord(
        id=row.id,
        owner=owner,
        owner_id=owner_id,
        language=row.language,
        variant=row.variant,
        asset_type=row.asset_type,
        url=row.url,
    )


# =============================================================================
# Transaction scope
# =============================================================================


class SqlPublicationTransaction:
    """Transaction scope over one SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _now_param(self, now: datetime) -> Any:
        return literal(now, UtcDateTime())

    # === Reads ===

    def get_lesson(self, lesson_id: str, *, for_update: bool = False) -> LessonRecord | None:
        stmt = select(LessonTable).where(LessonTable.id == lesson_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = self._session.scalars(
            stmt.execution_options(populate_existing=True)
        ).one_or_none()
        return _lesson_record(row) if row is not None else None

    def get_term(self, term_id: str) -> TermRecord | None:
        row = self._session.get(TermTable, term_id)
        return _term_record(row) if row is not None else None

    def get_program(self, program_id: str) -> ProgramRecord | None:
        stmt = select(ProgramTable).where(ProgramTable.id == program_id)
        row = self._session.scalars(
            stmt.execution_options(populate_existing=True)
        ).one_or_none()
        return _program_record(row) if row is not None else None

    def list_lessons(self, term_id: str) -> list[LessonRecord]:
        stmt = (
            select(LessonTable)
            .where(LessonTable.term_id == term_id)
            .order_by(LessonTable.lesson_number)
        )
        return [_lesson_record(row) for row in self._session.scalars(stmt)]

    def list_assets(self, owner: AssetOwner, owner_id: str) -> list[AssetRecord]:
        table, owner_col = _asset_table(owner)
        stmt = (
            select(table)
            .where(owner_col == owner_id)
            .order_by(table.language, table.asset_type, table.variant)
        )
        return [_asset_record(owner, owner_id, row) for row in self._session.scalars(stmt)]

    def thumbnail_variants(self, lesson_id: str, language: str) -> set[AssetVariant]:
        stmt = select(LessonAssetTable.variant).where(
            LessonAssetTable.lesson_id == lesson_id,
            LessonAssetTable.language == language,
            LessonAssetTable.asset_type == AssetType.THUMBNAIL,
        )
        return {AssetVariant(v) for v in self._session.scalars(stmt)}

    def claim_due_lessons(
        self,
        now: datetime,
        limit: int | None = None,
        after: tuple[datetime, str] | None = None,
    ) -> list[LessonRecord]:
        conditions = [
            LessonTable.status == LessonStatus.SCHEDULED,
            LessonTable.publish_at <= now,
        ]
        if after is not None:
            after_at, after_id = after
            conditions.append(
                or_(
                    LessonTable.publish_at > after_at,
                    and_(LessonTable.publish_at == after_at, LessonTable.id > after_id),
                )
            )
        stmt = (
            select(LessonTable)
            .where(*conditions)
            .order_by(LessonTable.publish_at, LessonTable.id)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [_lesson_record(row) for row in self._session.scalars(stmt)]

    # === Conditional lesson writes ===

    def _update_lesson(self, lesson_id: str, *guards: Any, **values: Any) -> LessonRecord | None:
        stmt = (
            update(LessonTable)
            .where(LessonTable.id == lesson_id, *guards)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.get_lesson(lesson_id)

    def mark_scheduled(self, lesson_id: str, publish_at: datetime) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            LessonTable.status == LessonStatus.DRAFT,
            status=LessonStatus.SCHEDULED,
            publish_at=publish_at,
        )

    def mark_published_now(self, lesson_id: str, now: datetime) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            LessonTable.status == LessonStatus.DRAFT,
            status=LessonStatus.PUBLISHED,
            publish_at=now,
            published_at=now,
        )

    def mark_due_published(self, lesson_id: str, now: datetime) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            LessonTable.status == LessonStatus.SCHEDULED,
            LessonTable.publish_at <= now,
            status=LessonStatus.PUBLISHED,
            published_at=func.coalesce(LessonTable.published_at, self._now_param(now)),
        )

    def mark_archived(self, lesson_id: str) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            LessonTable.status != LessonStatus.ARCHIVED,
            status=LessonStatus.ARCHIVED,
        )

    def mark_program_published(self, program_id: str, now: datetime) -> ProgramRecord | None:
        stmt = (
            update(ProgramTable)
            .where(
                ProgramTable.id == program_id,
                ProgramTable.status != ProgramStatus.ARCHIVED,
            )
            .values(
                status=ProgramStatus.PUBLISHED,
                published_at=func.coalesce(ProgramTable.published_at, self._now_param(now)),
            )
            .execution_options(synchronize_session=False)
        )
        if self._session.execute(stmt).rowcount == 0:
            return None
        return self.get_program(program_id)

    # === Authoring writes ===

    def _insert(self, row: Any, conflict_message: str) -> None:
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(conflict_message, cause=exc) from exc

    def insert_program(self, program: ProgramRecord) -> ProgramRecord:
        self._insert(
            ProgramTable(
                id=program.id,
                title=program.title,
                description=program.description,
                language_primary=program.language_primary,
                languages_available=list(program.languages_available),
                status=program.status,
                published_at=program.published_at,
            ),
            f"Program {program.id} already exists",
        )
        return program

    def insert_term(self, term: TermRecord) -> TermRecord:
        self._insert(
            TermTable(
                id=term.id,
                program_id=term.program_id,
                term_number=term.term_number,
                title=term.title,
            ),
            f"Term number {term.term_number} already exists in program {term.program_id}",
        )
        return term

    def insert_lesson(self, lesson: LessonRecord) -> LessonRecord:
        self._insert(
            LessonTable(
                id=lesson.id,
                term_id=lesson.term_id,
                lesson_number=lesson.lesson_number,
                title=lesson.title,
                content_type=lesson.content_type,
                duration_ms=lesson.duration_ms,
                is_paid=lesson.is_paid,
                content_language_primary=lesson.content_language_primary,
                content_languages_available=list(lesson.content_languages_available),
                content_urls_by_language=dict(lesson.content_urls_by_language),
                subtitle_languages=(
                    list(lesson.subtitle_languages)
                    if lesson.subtitle_languages is not None
                    else None
                ),
                subtitle_urls_by_language=lesson.subtitle_urls_by_language,
                status=lesson.status,
                publish_at=lesson.publish_at,
                published_at=lesson.published_at,
            ),
            f"Lesson number {lesson.lesson_number} already exists in term {lesson.term_id}",
        )
        return lesson

    def _find_asset(
        self,
        owner: AssetOwner,
        owner_id: str,
        language: str,
        variant: AssetVariant,
        asset_type: AssetType,
    ) -> Any:
        table, owner_col = _asset_table(owner)
        stmt = (
            select(table)
            .where(
                owner_col == owner_id,
                table.language == language,
                table.variant == variant,
                table.asset_type == asset_type,
            )
            .with_for_update()
        )
        return self._session.scalars(stmt).one_or_none()

    def upsert_asset(self, asset: AssetRecord) -> AssetRecord:
        table, owner_col = _asset_table(asset.owner)
        row = self._find_asset(
            asset.owner, asset.owner_id, asset.language, asset.variant, asset.asset_type
        )
        if row is not None:
            row.url = asset.url
            self._session.flush()
            return _asset_record(asset.owner, asset.owner_id, row)

        row = table(
            id=asset.id,
            language=asset.language,
            variant=asset.variant,
            asset_type=asset.asset_type,
            url=asset.url,
        )
        setattr(row, owner_col.key, asset.owner_id)
        self._insert(row, f"Asset {asset.key} was written concurrently")
        return asset

    def delete_asset(
        self,
        owner: AssetOwner,
        owner_id: str,
        language: str,
        variant: AssetVariant,
        asset_type: AssetType,
    ) -> bool:
        table, owner_col = _asset_table(owner)
        stmt = (
            delete(table)
            .where(
                owner_col == owner_id,
                table.language == language,
                table.variant == variant,
                table.asset_type == asset_type,
            )
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount > 0


# =============================================================================
# Store
# =============================================================================


class SqlPublicationStore:
    """Publication store over a SQLAlchemy engine.

    Example:
        >>> from lesson_spine.core.orm import create_store_engine
        >>> store = SqlPublicationStore(create_store_engine("sqlite:///:memory:"))
        >>> store.create_schema()
        >>> with store.transaction() as tx:
        ...     tx.get_lesson("missing") is None
        True
    """

    name = "sql"

    def __init__(
        self,
        engine: Engine,
        session_factory: sessionmaker | None = None,
    ) -> None:
        self.engine = engine
        self._session_factory = session_factory or lesson_session_factory(engine)

    @contextmanager
    def transaction(self) -> Iterator[SqlPublicationTransaction]:
        try:
            with self._session_factory() as session, session.begin():
                yield SqlPublicationTransaction(session)
        except IntegrityError as exc:
            raise ConflictError("Write violates a uniqueness or reference rule", cause=exc) from exc
        except SQLAlchemyError as exc:
            logger.warning("store_transaction_failed", backend=self.name, error=str(exc))
            raise InternalFailureError("Store transaction failed", cause=exc) from exc

    def create_schema(self) -> None:
        try:
            LessonSpineBase.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise InternalFailureError("Schema creation failed", cause=exc) from exc
        logger.info("store_schema_created", backend=self.name, url=str(self.engine.url))

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = [
    "SqlPublicationStore",
    "SqlPublicationTransaction",
]
