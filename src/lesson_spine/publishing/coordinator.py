"""Scheduled-publish coordinator.

Manifesto:
    Scheduled publishing is a poller, not a timer queue. Every tick scans
    for lessons whose ``publish_at`` has passed and publishes them exactly
    as ``publish_now`` would. Any number of coordinator processes may tick
    against the same database at once: ``FOR UPDATE SKIP LOCKED`` hands
    each due row to exactly one of them, and the guarded update re-checks
    the row so a lesson is never published twice.

Architecture:
    ::

        tick()
          │  started_at = clock()          one "now" for the whole tick
          ▼
        ┌──────────────────────── transaction ─────────────────────────┐
        │ claim_due_lessons(started_at)   status=scheduled AND          │
        │                                 publish_at <= now, SKIP LOCKED │
        │ with batch_size: page past skipped rows until it is full       │
        │ for lesson in due:                                             │
        │   thumbnails unmet?  ── TransientSkip ──► log, stays scheduled │
        │   mark_due_published()  ── None ──► lost race, no cascade      │
        │   cascade_program_status()                                     │
        └───────────────────────────── commit ───────────────────────────┘
          │
          ▼
        TickSummary  ──►  "publish_tick_complete" log record

Failure semantics:
    Any error inside the transaction rolls the whole tick back and is
    logged as ``publish_tick_failed``. The next tick retries the same due
    set. A skipped lesson is not an error.

Tags:
    lesson-spine, publishing, coordinator, skip-locked, poller
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from lesson_spine.core.errors import (
    ErrorContext,
    InternalFailureError,
    LessonSpineError,
    TransientSkip,
)
from lesson_spine.core.logging import LogContext, get_logger
from lesson_spine.core.models import LessonRecord
from lesson_spine.core.timestamps import Clock, utc_now
from lesson_spine.publishing.cascade import cascade_program_status
from lesson_spine.publishing.preconditions import (
    MISSING_THUMBNAILS_MESSAGE,
    ThumbnailPolicy,
    evaluate_thumbnails,
)
from lesson_spine.store.protocol import PublicationStore, PublicationTransaction

logger = get_logger(__name__)


@dataclass(frozen=True)
class TickSummary:
    """Per-tick record for operational logging."""

    started_at: datetime
    due_count: int = 0
    published_count: int = 0
    skipped_count: int = 0
    lost_race_count: int = 0
    published_ids: tuple[str, ...] = field(default_factory=tuple)
    skipped_ids: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "due_count": self.due_count,
            "published_count": self.published_count,
            "skipped_count": self.skipped_count,
            "lost_race_count": self.lost_race_count,
            "published_ids": list(self.published_ids),
            "skipped_ids": list(self.skipped_ids),
        }


class ScheduledPublishCoordinator:
    """Publishes lessons whose scheduled time has arrived.

    Example:
        >>> coordinator = ScheduledPublishCoordinator(store)
        >>> summary = coordinator.tick()
        >>> summary.published_count
        0
    """

    def __init__(
        self,
        store: PublicationStore,
        policy: ThumbnailPolicy | None = None,
        clock: Clock = utc_now,
        batch_size: int | None = None,
    ) -> None:
        self.store = store
        self.policy = policy or ThumbnailPolicy()
        self.batch_size = batch_size
        self._clock = clock

    def tick(self) -> TickSummary:
        """Run one scan-and-publish cycle.

        Raises:
            LessonSpineError: The tick was rolled back. Taxonomy errors are
                re-raised as they are; anything else as
                :class:`InternalFailureError`.
        """
        started_at = self._clock()
        due: list[LessonRecord] = []
        published: list[str] = []
        skipped: list[str] = []
        lost_races = 0

        with LogContext(tick_id=uuid4().hex[:12]):
            try:
                with self.store.transaction() as tx:
                    for lesson in self._claim_pages(tx, started_at, published):
                        due.append(lesson)
                        try:
                            if self._publish_due(tx, lesson, started_at):
                                published.append(lesson.id)
                            else:
                                lost_races += 1
                        except TransientSkip as skip:
                            skipped.append(lesson.id)
                            logger.warning(
                                "publish_skipped_missing_thumbnails",
                                reason=skip.message,
                                **skip.details,
                            )
            except LessonSpineError as exc:
                logger.error(
                    "publish_tick_failed",
                    started_at=started_at.isoformat(),
                    **exc.to_dict(),
                )
                raise
            except Exception as exc:
                logger.error(
                    "publish_tick_failed",
                    started_at=started_at.isoformat(),
                    error=str(exc),
                    exc_info=True,
                )
                raise InternalFailureError("Publish tick failed", cause=exc) from exc

            summary = TickSummary(
                started_at=started_at,
                due_count=len(due),
                published_count=len(published),
                skipped_count=len(skipped),
                lost_race_count=lost_races,
                published_ids=tuple(published),
                skipped_ids=tuple(skipped),
            )
            logger.info("publish_tick_complete", **summary.to_dict())
        return summary

    def _claim_pages(
        self, tx: PublicationTransaction, now: datetime, published: list[str]
    ) -> Iterator[LessonRecord]:
        """Yield claimed due lessons, oldest first.

        Without a batch size the whole due set is one claim. With one, the
        claim pages forward past skipped and lost rows until ``batch_size``
        lessons are published or the due set runs out, so lessons stuck on
        their thumbnails never hold back newer ones.
        """
        after: tuple[datetime, str] | None = None
        while True:
            remaining = None if self.batch_size is None else self.batch_size - len(published)
            page = tx.claim_due_lessons(now, remaining, after=after)
            yield from page
            if not page or self.batch_size is None or len(published) >= self.batch_size:
                return
            last = page[-1]
            after = (last.publish_at, last.id)

    def _publish_due(
        self, tx: PublicationTransaction, lesson: LessonRecord, now: datetime
    ) -> bool:
        """Publish one claimed lesson. ``False`` when its guarded update matched nothing.

        Raises:
            TransientSkip: Thumbnail precondition unmet; lesson left scheduled.
        """
        check = evaluate_thumbnails(tx, lesson, self.policy)
        if not check.satisfied:
            raise TransientSkip(
                MISSING_THUMBNAILS_MESSAGE,
                context=ErrorContext(lesson_id=lesson.id, action="scheduled_publish"),
                details=check.to_log_fields(),
            )

        updated = tx.mark_due_published(lesson.id, now)
        if updated is None:
            logger.info("publish_lost_race", lesson_id=lesson.id)
            return False

        program = cascade_program_status(tx, updated, now)
        logger.info(
            "lesson_published",
            lesson_id=lesson.id,
            published_at=updated.published_at.isoformat() if updated.published_at else None,
            program_id=program.id if program else None,
            trigger="schedule",
        )
        return True


__all__ = ["ScheduledPublishCoordinator", "TickSummary"]
