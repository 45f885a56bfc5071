"""Lesson publication state machine.

Modules
-------
actions         Closed union of author actions (schedule / publish_now / archive)
preconditions   Primary-language thumbnail check
transitions     LessonStatusService: synchronous author actions
cascade         Lesson published -> program published, same transaction
coordinator     ScheduledPublishCoordinator: skip-locked due-lesson poller
"""

from lesson_spine.publishing.actions import (
    ArchiveAction,
    LessonAction,
    PublishNowAction,
    ScheduleAction,
    parse_action,
)
from lesson_spine.publishing.cascade import cascade_program_status
from lesson_spine.publishing.coordinator import ScheduledPublishCoordinator, TickSummary
from lesson_spine.publishing.preconditions import (
    ThumbnailCheck,
    ThumbnailPolicy,
    ensure_thumbnails,
    evaluate_thumbnails,
)
from lesson_spine.publishing.transitions import LessonStatusService

__all__ = [
    "ArchiveAction",
    "LessonAction",
    "LessonStatusService",
    "PublishNowAction",
    "ScheduleAction",
    "ScheduledPublishCoordinator",
    "ThumbnailCheck",
    "ThumbnailPolicy",
    "TickSummary",
    "cascade_program_status",
    "ensure_thumbnails",
    "evaluate_thumbnails",
    "parse_action",
]
