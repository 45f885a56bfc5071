"""In-process publication store with row locks.

Holds programs, terms, lessons and assets in dictionaries guarded by one
``threading.Condition``, and reproduces the transaction semantics the state
machine relies on:

* **Row locks.** ``get_lesson(for_update=True)`` and every conditional write
  take the row's lock and block until it is free (or the lock wait times out
  with :class:`InternalFailureError`). Locks are held until the transaction
  ends.
* **Skip locked.** ``claim_due_lessons`` never waits: rows locked by another
  transaction are left out of the result.
* **Isolation.** Writes are staged on the transaction and applied on commit;
  other transactions only ever see committed rows. A rollback drops them.

Used by the test-suite for concurrency scenarios SQLite cannot express, and
for single-process demos (``LESSON_SPINE_STORE_BACKEND=memory``).

Tags:
    lesson-spine, store, in-memory, row-locks, skip-locked, threading
"""

from __future__ import annotations

import itertools
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any

from lesson_spine.core.enums import AssetOwner, AssetType, AssetVariant, LessonStatus, ProgramStatus
from lesson_spine.core.errors import ConflictError, InternalFailureError
from lesson_spine.core.logging import get_logger
from lesson_spine.core.models import AssetRecord, LessonRecord, ProgramRecord, TermRecord

logger = get_logger(__name__)

_DELETED = object()

AssetKey = tuple[AssetOwner, str, str, AssetVariant, AssetType]


class MemoryPublicationTransaction:
    """One transaction against a :class:`MemoryPublicationStore`."""

    def __init__(self, store: MemoryPublicationStore, txn_id: int) -> None:
        self._store = store
        self.txn_id = txn_id
        self._programs: dict[str, ProgramRecord] = {}
        self._terms: dict[str, TermRecord] = {}
        self._lessons: dict[str, LessonRecord] = {}
        self._assets: dict[AssetKey, Any] = {}
        self._closed = False

    # === Internal view helpers ===

    def _lesson(self, lesson_id: str) -> LessonRecord | None:
        if lesson_id in self._lessons:
            return self._lessons[lesson_id]
        return self._store._lessons.get(lesson_id)

    def _program(self, program_id: str) -> ProgramRecord | None:
        if program_id in self._programs:
            return self._programs[program_id]
        return self._store._programs.get(program_id)

    def _term(self, term_id: str) -> TermRecord | None:
        if term_id in self._terms:
            return self._terms[term_id]
        return self._store._terms.get(term_id)

    def _asset_view(self) -> dict[AssetKey, AssetRecord]:
        merged: dict[AssetKey, Any] = {**self._store._assets, **self._assets}
        return {key: asset for key, asset in merged.items() if asset is not _DELETED}

    def _lock(self, table: str, row_id: Any) -> None:
        self._store._acquire((table, row_id), self.txn_id, wait=True)

    def _check_open(self) -> None:
        if self._closed:
            raise InternalFailureError("Transaction is already closed")

    # === Reads ===

    def get_lesson(self, lesson_id: str, *, for_update: bool = False) -> LessonRecord | None:
        self._check_open()
        if for_update:
            self._lock("lessons", lesson_id)
        with self._store._cond:
            return self._lesson(lesson_id)

    def get_term(self, term_id: str) -> TermRecord | None:
        with self._store._cond:
            return self._term(term_id)

    def get_program(self, program_id: str) -> ProgramRecord | None:
        self._check_open()
        with self._store._cond:
            return self._program(program_id)

    def list_lessons(self, term_id: str) -> list[LessonRecord]:
        with self._store._cond:
            ids = set(self._store._lessons) | set(self._lessons)
            lessons = [self._lesson(i) for i in ids]
        return sorted(
            (lesson for lesson in lessons if lesson is not None and lesson.term_id == term_id),
            key=lambda lesson: lesson.lesson_number,
        )

    def list_assets(self, owner: AssetOwner, owner_id: str) -> list[AssetRecord]:
        with self._store._cond:
            assets = self._asset_view().values()
        return sorted(
            (a for a in assets if a.owner is owner and a.owner_id == owner_id),
            key=lambda a: (a.language, a.asset_type.value, a.variant.value),
        )

    def thumbnail_variants(self, lesson_id: str, language: str) -> set[AssetVariant]:
        with self._store._cond:
            assets = self._asset_view().values()
        return {
            a.variant
            for a in assets
            if a.owner is AssetOwner.LESSON
            and a.owner_id == lesson_id
            and a.language == language
            and a.asset_type is AssetType.THUMBNAIL
        }

    def claim_due_lessons(
        self,
        now: datetime,
        limit: int | None = None,
        after: tuple[datetime, str] | None = None,
    ) -> list[LessonRecord]:
        self._check_open()
        store = self._store
        claimed: list[LessonRecord] = []
        with store._cond:
            ids = set(store._lessons) | set(self._lessons)
            candidates = [
                lesson
                for lesson in (self._lesson(i) for i in ids)
                if lesson is not None
                and lesson.status is LessonStatus.SCHEDULED
                and lesson.publish_at is not None
                and lesson.publish_at <= now
                and (after is None or (lesson.publish_at, lesson.id) > after)
            ]
            candidates.sort(key=lambda lesson: (lesson.publish_at, lesson.id))
            for lesson in candidates:
                if limit is not None and len(claimed) >= limit:
                    break
                if store._acquire(("lessons", lesson.id), self.txn_id, wait=False):
                    claimed.append(lesson)
        return claimed

    # === Conditional lesson writes ===

    def _update_lesson(self, lesson_id: str, guard: Any, **changes: Any) -> LessonRecord | None:
        self._check_open()
        self._lock("lessons", lesson_id)
        with self._store._cond:
            current = self._lesson(lesson_id)
            if current is None or not guard(current):
                return None
            updated = replace(current, **changes)
            self._lessons[lesson_id] = updated
            return updated

    def mark_scheduled(self, lesson_id: str, publish_at: datetime) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            lambda lesson: lesson.status is LessonStatus.DRAFT,
            status=LessonStatus.SCHEDULED,
            publish_at=publish_at,
        )

    def mark_published_now(self, lesson_id: str, now: datetime) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            lambda lesson: lesson.status is LessonStatus.DRAFT,
            status=LessonStatus.PUBLISHED,
            publish_at=now,
            published_at=now,
        )

    def mark_due_published(self, lesson_id: str, now: datetime) -> LessonRecord | None:
        self._check_open()
        self._lock("lessons", lesson_id)
        with self._store._cond:
            current = self._lesson(lesson_id)
            if (
                current is None
                or current.status is not LessonStatus.SCHEDULED
                or current.publish_at is None
                or current.publish_at > now
            ):
                return None
            updated = replace(
                current,
                status=LessonStatus.PUBLISHED,
                published_at=current.published_at or now,
            )
            self._lessons[lesson_id] = updated
            return updated

    def mark_archived(self, lesson_id: str) -> LessonRecord | None:
        return self._update_lesson(
            lesson_id,
            lambda lesson: lesson.status is not LessonStatus.ARCHIVED,
            status=LessonStatus.ARCHIVED,
        )

    def mark_program_published(self, program_id: str, now: datetime) -> ProgramRecord | None:
        self._check_open()
        self._lock("programs", program_id)
        with self._store._cond:
            current = self._program(program_id)
            if current is None or current.status is ProgramStatus.ARCHIVED:
                return None
            updated = replace(
                current,
                status=ProgramStatus.PUBLISHED,
                published_at=current.published_at or now,
            )
            self._programs[program_id] = updated
            return updated

    # === Authoring writes ===

    def insert_program(self, program: ProgramRecord) -> ProgramRecord:
        self._check_open()
        with self._store._cond:
            if self._program(program.id) is not None:
                raise ConflictError(f"Program {program.id} already exists")
            self._programs[program.id] = program
        return program

    def insert_term(self, term: TermRecord) -> TermRecord:
        self._check_open()
        with self._store._cond:
            if self._program(term.program_id) is None:
                raise ConflictError(f"Program {term.program_id} does not exist")
            if self._term(term.id) is not None or self._store._term_number_taken(
                term, self._terms
            ):
                raise ConflictError(
                    f"Term number {term.term_number} already exists in program {term.program_id}"
                )
            self._terms[term.id] = term
        return term

    def insert_lesson(self, lesson: LessonRecord) -> LessonRecord:
        self._check_open()
        with self._store._cond:
            if self._term(lesson.term_id) is None:
                raise ConflictError(f"Term {lesson.term_id} does not exist")
            if self._lesson(lesson.id) is not None or self._store._lesson_number_taken(
                lesson, self._lessons
            ):
                raise ConflictError(
                    f"Lesson number {lesson.lesson_number} already exists in term {lesson.term_id}"
                )
            self._lessons[lesson.id] = lesson
        return lesson

    def upsert_asset(self, asset: AssetRecord) -> AssetRecord:
        self._check_open()
        self._lock("assets", asset.key)
        with self._store._cond:
            owner_exists = (
                self._program(asset.owner_id) is not None
                if asset.owner is AssetOwner.PROGRAM
                else self._lesson(asset.owner_id) is not None
            )
            if not owner_exists:
                raise ConflictError(f"{asset.owner.value.title()} {asset.owner_id} does not exist")
            existing = self._asset_view().get(asset.key)
            stored = replace(existing, url=asset.url) if existing is not None else asset
            self._assets[asset.key] = stored
        return stored

    def delete_asset(
        self,
        owner: AssetOwner,
        owner_id: str,
        language: str,
        variant: AssetVariant,
        asset_type: AssetType,
    ) -> bool:
        self._check_open()
        key: AssetKey = (owner, owner_id, language, variant, asset_type)
        self._lock("assets", key)
        with self._store._cond:
            if key not in self._asset_view():
                return False
            self._assets[key] = _DELETED
        return True

    # === Completion ===

    def _commit(self) -> None:
        store = self._store
        with store._cond:
            for term in self._terms.values():
                if store._term_number_taken(term, {}):
                    raise ConflictError(
                        f"Term number {term.term_number} already exists "
                        f"in program {term.program_id}"
                    )
            for lesson in self._lessons.values():
                if lesson.id not in store._lessons and store._lesson_number_taken(lesson, {}):
                    raise ConflictError(
                        f"Lesson number {lesson.lesson_number} already exists "
                        f"in term {lesson.term_id}"
                    )
            store._programs.update(self._programs)
            store._terms.update(self._terms)
            store._lessons.update(self._lessons)
            for key, asset in self._assets.items():
                if asset is _DELETED:
                    store._assets.pop(key, None)
                else:
                    store._assets[key] = asset
        self._close()

    def _rollback(self) -> None:
        self._programs.clear()
        self._terms.clear()
        self._lessons.clear()
        self._assets.clear()
        self._close()

    def _close(self) -> None:
        self._closed = True
        self._store._release_all(self.txn_id)


class MemoryPublicationStore:
    """Thread-safe in-process publication store.

    Example:
        >>> store = MemoryPublicationStore(lock_timeout_seconds=1.0)
        >>> with store.transaction() as tx:
        ...     tx.get_lesson("missing") is None
        True
    """

    name = "memory"

    def __init__(self, lock_timeout_seconds: float = 30.0) -> None:
        self.lock_timeout_seconds = lock_timeout_seconds
        self._cond = threading.Condition()
        self._programs: dict[str, ProgramRecord] = {}
        self._terms: dict[str, TermRecord] = {}
        self._lessons: dict[str, LessonRecord] = {}
        self._assets: dict[AssetKey, AssetRecord] = {}
        self._row_locks: dict[tuple[str, Any], int] = {}
        self._txn_ids = itertools.count(1)

    @contextmanager
    def transaction(self) -> Iterator[MemoryPublicationTransaction]:
        with self._cond:
            txn_id = next(self._txn_ids)
        tx = MemoryPublicationTransaction(self, txn_id)
        try:
            yield tx
            tx._commit()
        finally:
            if not tx._closed:
                tx._rollback()

    def create_schema(self) -> None:
        logger.debug("store_schema_created", backend=self.name)

    def dispose(self) -> None:
        with self._cond:
            self._row_locks.clear()
            self._cond.notify_all()

    # === Row locks ===

    def _acquire(self, key: tuple[str, Any], txn_id: int, *, wait: bool) -> bool:
        """Take the row lock *key* for *txn_id*.

        With ``wait=False`` returns ``False`` immediately when another
        transaction holds it. With ``wait=True`` blocks until it is released
        or ``lock_timeout_seconds`` elapses.
        """
        deadline = time.monotonic() + self.lock_timeout_seconds
        with self._cond:
            while True:
                holder = self._row_locks.get(key)
                if holder is None or holder == txn_id:
                    self._row_locks[key] = txn_id
                    return True
                if not wait:
                    return False
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("row_lock_timeout", table=key[0], row=str(key[1]), txn_id=txn_id)
                    raise InternalFailureError(
                        f"Timed out waiting for {key[0]} row lock",
                        details={"row": str(key[1])},
                    )
                self._cond.wait(remaining)

    def _release_all(self, txn_id: int) -> None:
        with self._cond:
            held = [key for key, holder in self._row_locks.items() if holder == txn_id]
            for key in held:
                del self._row_locks[key]
            if held:
                self._cond.notify_all()

    def locked_rows(self) -> dict[tuple[str, Any], int]:
        """Currently held row locks (row key -> transaction id)."""
        with self._cond:
            return dict(self._row_locks)

    # === Uniqueness ===

    def _term_number_taken(self, term: TermRecord, staged: dict[str, TermRecord]) -> bool:
        rows = {**self._terms, **staged}
        return any(
            other.id != term.id
            and other.program_id == term.program_id
            and other.term_number == term.term_number
            for other in rows.values()
        )

    def _lesson_number_taken(self, lesson: LessonRecord, staged: dict[str, LessonRecord]) -> bool:
        rows = {**self._lessons, **staged}
        return any(
            other.id != lesson.id
            and other.term_id == lesson.term_id
            and other.lesson_number == lesson.lesson_number
            for other in rows.values()
        )


__all__ = [
    "MemoryPublicationStore",
    "MemoryPublicationTransaction",
]
