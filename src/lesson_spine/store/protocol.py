"""Publication store protocol.

┌──────────────────────────────────────────────────────────────────────────────┐
│  PUBLICATION STORE PROTOCOL                                                   │
│                                                                               │
│  The state machine never talks to a database directly. It opens one          │
│  transaction scope per operation and asks that scope for the primitives it   │
│  needs: locked reads, skip-locked claiming and conditional writes.           │
│                                                                               │
│   ┌──────────────────────┐  transaction()  ┌───────────────────────────┐     │
│   │ LessonStatusService  │ ──────────────► │  PublicationTransaction   │     │
│   │ Coordinator.tick()   │                 │                           │     │
│   │ AuthoringService     │                 │  get_lesson(for_update)   │     │
│   └──────────────────────┘                 │  claim_due_lessons()      │     │
│                                            │  mark_*()  -> record|None │     │
│                                            │  insert_* / upsert_asset  │     │
│                                            └─────────────┬─────────────┘     │
│                                                          │                    │
│                        ┌─────────────────────────────────┴───────┐            │
│                        ▼                                         ▼            │
│              SqlPublicationStore                     MemoryPublicationStore   │
│              (SQLAlchemy, FOR UPDATE                 (row locks + staged      │
│               SKIP LOCKED on Postgres)                writes, in-process)     │
│                                                                               │
│  Conditional writes return ``None`` when no row matched their guard. A        │
│  ``None`` is a lost race, not an error: the caller skips what depends on it.  │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable

from lesson_spine.core.enums import AssetOwner, AssetType, AssetVariant
from lesson_spine.core.models import (
    AssetRecord,
    LessonRecord,
    ProgramRecord,
    TermRecord,
)


@runtime_checkable
class PublicationTransaction(Protocol):
    """One transaction scope against the publication store.

    Everything read through a transaction reflects that transaction's own
    writes. Row locks taken here are held until the scope commits or rolls
    back.
    """

    # === Reads ===

    def get_lesson(self, lesson_id: str, *, for_update: bool = False) -> LessonRecord | None:
        """Read one lesson; with ``for_update`` block until its row lock is held."""
        ...

    def get_term(self, term_id: str) -> TermRecord | None: ...

    def get_program(self, program_id: str) -> ProgramRecord | None: ...

    def list_lessons(self, term_id: str) -> list[LessonRecord]: ...

    def list_assets(self, owner: AssetOwner, owner_id: str) -> list[AssetRecord]: ...

    def thumbnail_variants(self, lesson_id: str, language: str) -> set[AssetVariant]:
        """Variants of the lesson's thumbnail rows for *language*."""
        ...

    def claim_due_lessons(
        self,
        now: datetime,
        limit: int | None = None,
        after: tuple[datetime, str] | None = None,
    ) -> list[LessonRecord]:
        """Lock and return scheduled lessons with ``publish_at <= now``.

        Rows already locked by another transaction are skipped, never
        waited on. Ordered by ``(publish_at, id)``; with *after*, only rows
        past that key are returned, so a caller can page through the due set.
        """
        ...

    # === Conditional lesson writes ===

    def mark_scheduled(self, lesson_id: str, publish_at: datetime) -> LessonRecord | None:
        """``draft`` -> ``scheduled`` with ``publish_at``."""
        ...

    def mark_published_now(self, lesson_id: str, now: datetime) -> LessonRecord | None:
        """``draft`` -> ``published`` with ``publish_at = published_at = now``."""
        ...

    def mark_due_published(self, lesson_id: str, now: datetime) -> LessonRecord | None:
        """``scheduled`` and due -> ``published``, ``published_at`` set once."""
        ...

    def mark_archived(self, lesson_id: str) -> LessonRecord | None:
        """Any non-archived status -> ``archived``; timestamps untouched."""
        ...

    def mark_program_published(self, program_id: str, now: datetime) -> ProgramRecord | None:
        """Non-archived program -> ``published``, ``published_at`` set once."""
        ...

    # === Authoring writes ===

    def insert_program(self, program: ProgramRecord) -> ProgramRecord: ...

    def insert_term(self, term: TermRecord) -> TermRecord: ...

    def insert_lesson(self, lesson: LessonRecord) -> LessonRecord: ...

    def upsert_asset(self, asset: AssetRecord) -> AssetRecord:
        """Insert, or replace the URL of the row with the same key."""
        ...

    def delete_asset(
        self,
        owner: AssetOwner,
        owner_id: str,
        language: str,
        variant: AssetVariant,
        asset_type: AssetType,
    ) -> bool:
        """Delete the row with this key; ``False`` when there was none."""
        ...


@runtime_checkable
class PublicationStore(Protocol):
    """Factory of transaction scopes over lessons, programs and assets."""

    name: str

    def transaction(self) -> AbstractContextManager[PublicationTransaction]:
        """Open a transaction: commit on clean exit, roll back on any exception."""
        ...

    def create_schema(self) -> None:
        """Create tables (idempotent)."""
        ...

    def dispose(self) -> None:
        """Release pooled connections / held resources."""
        ...


__all__ = [
    "PublicationStore",
    "PublicationTransaction",
]
