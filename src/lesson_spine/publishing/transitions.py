"""Synchronous lesson status transitions.

Manifesto:
    An author action touches exactly one lesson and, for ``publish_now``,
    its program. Each action runs in one transaction that first re-reads
    the lesson under its row lock, so a concurrent coordinator tick on the
    same lesson is serialized against it and the checks below always see
    current state.

State machine::

    draft ──schedule──► scheduled ──(coordinator tick)──► published
      │                                                      ▲
      └──────────────────────publish_now─────────────────────┘

    draft | scheduled | published ──archive──► archived (terminal)

    ┌─────────────┬───────────────┬──────────────────────────────────────┐
    │ action      │ allowed from  │ effect                               │
    ├─────────────┼───────────────┼──────────────────────────────────────┤
    │ schedule    │ draft         │ scheduled, publish_at = given        │
    │ publish_now │ draft         │ published, publish_at=published_at=  │
    │             │               │ now, program cascade                 │
    │ archive     │ all but       │ archived, timestamps untouched       │
    │             │ archived      │                                      │
    └─────────────┴───────────────┴──────────────────────────────────────┘

Tags:
    lesson-spine, publishing, state-machine, transactions
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, assert_never

from lesson_spine.core.enums import LessonStatus
from lesson_spine.core.errors import (
    ErrorContext,
    InternalFailureError,
    InvalidStateError,
    LessonSpineError,
    NotFoundError,
    ValidationError,
)
from lesson_spine.core.logging import get_logger
from lesson_spine.core.models import LessonRecord
from lesson_spine.core.timestamps import Clock, parse_timestamp, utc_now
from lesson_spine.publishing.actions import (
    ArchiveAction,
    PublishNowAction,
    ScheduleAction,
    parse_action,
)
from lesson_spine.publishing.cascade import cascade_program_status
from lesson_spine.publishing.preconditions import ThumbnailPolicy, ensure_thumbnails
from lesson_spine.store.protocol import PublicationStore, PublicationTransaction

logger = get_logger(__name__)


class LessonStatusService:
    """Applies author actions to lessons.

    Example:
        >>> service = LessonStatusService(store)
        >>> service.apply(lesson_id, {"action": "publish_now"}).status
        <LessonStatus.PUBLISHED: 'published'>
    """

    def __init__(
        self,
        store: PublicationStore,
        policy: ThumbnailPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.policy = policy or ThumbnailPolicy()
        self._clock = clock

    # === Actions ===

    def schedule(self, lesson_id: str, publish_at: str | datetime | None) -> LessonRecord:
        """Move a draft lesson to ``scheduled`` for a future ``publish_at``.

        Checks run in order: lesson lookup, then a supplied ``publish_at``
        (parseable and in the future), then draft status, and last whether
        ``publish_at`` was supplied at all.

        Raises:
            NotFoundError: Unknown lesson.
            ValidationError: ``publish_at`` missing, unparseable or not in the future.
            InvalidStateError: Lesson is not a draft.
        """
        now = self._clock()
        context = ErrorContext(lesson_id=lesson_id, action="schedule")

        with self.store.transaction() as tx:
            lesson = self._lock_lesson(tx, lesson_id, "schedule")
            when = self._parse_publish_at(publish_at, now, context)
            if lesson.status is not LessonStatus.DRAFT:
                raise self._invalid_state("Only draft lessons can be scheduled", lesson, "schedule")
            if when is None:
                raise ValidationError("publish_at is required when scheduling", context=context)
            updated = self._require_updated(tx.mark_scheduled(lesson_id, when), lesson_id)

        logger.info("lesson_scheduled", lesson_id=lesson_id, publish_at=when.isoformat())
        return updated

    def publish_now(self, lesson_id: str) -> LessonRecord:
        """Publish a draft lesson immediately and cascade to its program.

        Raises:
            NotFoundError: Unknown lesson.
            InvalidStateError: Lesson is not a draft.
            PreconditionFailedError: Primary-language thumbnails incomplete.
        """
        with self.store.transaction() as tx:
            now = self._clock()
            lesson = self._lock_lesson(tx, lesson_id, "publish_now")
            if lesson.status is not LessonStatus.DRAFT:
                raise self._invalid_state(
                    "Only draft lessons can be published directly", lesson, "publish_now"
                )
            ensure_thumbnails(tx, lesson, self.policy)
            updated = self._require_updated(tx.mark_published_now(lesson_id, now), lesson_id)
            program = cascade_program_status(tx, updated, now)

        logger.info(
            "lesson_published",
            lesson_id=lesson_id,
            published_at=now.isoformat(),
            program_id=program.id if program else None,
            trigger="publish_now",
        )
        return updated

    def archive(self, lesson_id: str) -> LessonRecord:
        """Archive a lesson from any non-terminal status.

        Raises:
            NotFoundError: Unknown lesson.
            InvalidStateError: Lesson is already archived.
        """
        with self.store.transaction() as tx:
            lesson = self._lock_lesson(tx, lesson_id, "archive")
            if lesson.status.is_terminal:
                raise self._invalid_state(
                    "Lesson cannot be archived from this status", lesson, "archive"
                )
            updated = self._require_updated(tx.mark_archived(lesson_id), lesson_id)

        logger.info("lesson_archived", lesson_id=lesson_id, previous_status=lesson.status.value)
        return updated

    def apply(
        self,
        lesson_id: str,
        action: ScheduleAction | PublishNowAction | ArchiveAction | dict[str, Any],
    ) -> LessonRecord:
        """Validate *action* and run it against the lesson."""
        parsed = parse_action(action)
        try:
            match parsed:
                case ScheduleAction(publish_at=publish_at):
                    return self.schedule(lesson_id, publish_at)
                case PublishNowAction():
                    return self.publish_now(lesson_id)
                case ArchiveAction():
                    return self.archive(lesson_id)
                case _:
                    assert_never(parsed)
        except LessonSpineError as exc:
            exc.with_context(lesson_id=lesson_id, action=parsed.action)
            logger.info("lesson_action_rejected", **exc.to_dict())
            raise

    # === Helpers ===

    @staticmethod
    def _parse_publish_at(
        publish_at: str | datetime | None, now: datetime, context: ErrorContext
    ) -> datetime | None:
        if publish_at is None or (isinstance(publish_at, str) and not publish_at.strip()):
            return None
        try:
            when = parse_timestamp(publish_at)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Invalid publish_at", context=context, cause=exc) from exc
        if when <= now:
            raise ValidationError(
                "publish_at must be in the future",
                context=context,
                details={"publish_at": when.isoformat(), "now": now.isoformat()},
            )
        return when

    @staticmethod
    def _lock_lesson(tx: PublicationTransaction, lesson_id: str, action: str) -> LessonRecord:
        lesson = tx.get_lesson(lesson_id, for_update=True)
        if lesson is None:
            raise NotFoundError(
                f"Lesson {lesson_id} not found",
                context=ErrorContext(lesson_id=lesson_id, action=action),
            )
        return lesson

    @staticmethod
    def _invalid_state(message: str, lesson: LessonRecord, action: str) -> InvalidStateError:
        return InvalidStateError(
            message,
            context=ErrorContext(lesson_id=lesson.id, action=action),
            details={"status": lesson.status.value},
        )

    @staticmethod
    def _require_updated(updated: LessonRecord | None, lesson_id: str) -> LessonRecord:
        # The row is locked by this transaction, so its guard cannot have changed.
        if updated is None:
            raise InternalFailureError(
                f"Lesson {lesson_id} changed under its row lock",
                context=ErrorContext(lesson_id=lesson_id),
            )
        return updated


__all__ = ["LessonStatusService"]
