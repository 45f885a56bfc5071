"""Builders for test scenarios: a pinned clock and a row seeder."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta
from typing import Any

from lesson_spine.authoring import AuthoringService
from lesson_spine.core.enums import AssetVariant, ContentType, LessonStatus, ProgramStatus
from lesson_spine.core.models import LessonRecord, ProgramRecord, TermRecord, new_id
from lesson_spine.core.orm.session import create_store_engine
from lesson_spine.store import PublicationStore, SqlPublicationStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FixedClock:
    """Clock returning a pinned instant until advanced."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class Seeder:
    """Insert rows directly, bypassing the state machine, to set up scenarios."""

    def __init__(self, store: PublicationStore) -> None:
        self.store = store
        self.authoring = AuthoringService(store)
        self._numbers = itertools.count(1)

    def program(
        self,
        *,
        status: ProgramStatus = ProgramStatus.DRAFT,
        published_at: datetime | None = None,
        language: str = "en",
    ) -> ProgramRecord:
        record = ProgramRecord(
            id=new_id(),
            title="Intro to Testing",
            language_primary=language,
            languages_available=(language,),
            status=status,
            published_at=published_at,
        )
        with self.store.transaction() as tx:
            tx.insert_program(record)
        return record

    def term(self, program: ProgramRecord) -> TermRecord:
        record = TermRecord(id=new_id(), program_id=program.id, term_number=next(self._numbers))
        with self.store.transaction() as tx:
            tx.insert_term(record)
        return record

    def lesson(
        self,
        term: TermRecord,
        *,
        status: LessonStatus = LessonStatus.DRAFT,
        publish_at: datetime | None = None,
        published_at: datetime | None = None,
        language: str = "en",
    ) -> LessonRecord:
        record = LessonRecord(
            id=new_id(),
            term_id=term.id,
            lesson_number=next(self._numbers),
            title="Lesson",
            content_type=ContentType.VIDEO,
            duration_ms=60_000,
            content_language_primary=language,
            content_languages_available=(language,),
            content_urls_by_language={language: "https://cdn.example/lesson.mp4"},
            status=status,
            publish_at=publish_at,
            published_at=published_at,
        )
        with self.store.transaction() as tx:
            tx.insert_lesson(record)
        return record

    def scheduled_lesson(
        self, term: TermRecord, publish_at: datetime, **kwargs: Any
    ) -> LessonRecord:
        return self.lesson(term, status=LessonStatus.SCHEDULED, publish_at=publish_at, **kwargs)

    def thumbnails(
        self,
        lesson: LessonRecord,
        *variants: AssetVariant,
        language: str = "en",
    ) -> None:
        for variant in variants:
            self.authoring.set_lesson_asset(
                lesson.id, language, variant, f"https://cdn.example/{lesson.id}/{variant.value}.jpg"
            )

    def full_thumbnails(self, lesson: LessonRecord, language: str = "en") -> None:
        self.thumbnails(lesson, AssetVariant.PORTRAIT, AssetVariant.LANDSCAPE, language=language)

    def get_lesson(self, lesson_id: str) -> LessonRecord:
        with self.store.transaction() as tx:
            lesson = tx.get_lesson(lesson_id)
        assert lesson is not None
        return lesson

    def get_program(self, program_id: str) -> ProgramRecord:
        with self.store.transaction() as tx:
            program = tx.get_program(program_id)
        assert program is not None
        return program


def assert_status_timestamps(lesson: LessonRecord) -> None:
    """Scheduled lessons carry publish_at; published lessons carry published_at."""
    if lesson.status is LessonStatus.SCHEDULED:
        assert lesson.publish_at is not None
    if lesson.status is LessonStatus.PUBLISHED:
        assert lesson.published_at is not None
    if lesson.status is LessonStatus.DRAFT:
        assert lesson.published_at is None


def make_sql_store(path: Any) -> SqlPublicationStore:
    store = SqlPublicationStore(create_store_engine(f"sqlite:///{path}"))
    store.create_schema()
    return store


