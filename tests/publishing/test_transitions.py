"""Tests for synchronous lesson status transitions."""

from __future__ import annotations

from datetime import timedelta

import pytest
from structlog.testing import capture_logs

from lesson_spine.core.enums import AssetVariant, LessonStatus, ProgramStatus
from lesson_spine.core.errors import (
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from lesson_spine.publishing import LessonStatusService, ThumbnailPolicy
from tests._support.builders import T0, assert_status_timestamps


@pytest.fixture
def service(store, clock):
    return LessonStatusService(store, clock=clock)


@pytest.fixture
def program(seed):
    return seed.program()


@pytest.fixture
def term(seed, program):
    return seed.term(program)


class TestSchedule:
    def test_draft_becomes_scheduled(self, service, seed, term):
        lesson = seed.lesson(term)
        updated = service.schedule(lesson.id, "2026-03-02T09:00:00Z")

        assert updated.status is LessonStatus.SCHEDULED
        assert updated.publish_at == T0.replace(day=2, hour=9)
        assert updated.published_at is None
        assert seed.get_lesson(lesson.id) == updated
        assert_status_timestamps(updated)

    def test_does_not_touch_program(self, service, seed, program, term):
        lesson = seed.lesson(term)
        service.schedule(lesson.id, T0 + timedelta(hours=1))
        assert seed.get_program(program.id).status is ProgramStatus.DRAFT

    @pytest.mark.parametrize(
        ("publish_at", "message"),
        [
            (None, "publish_at is required when scheduling"),
            ("", "publish_at is required when scheduling"),
            ("soon", "Invalid publish_at"),
            (T0, "publish_at must be in the future"),
            (T0 - timedelta(seconds=1), "publish_at must be in the future"),
        ],
    )
    def test_invalid_publish_at(self, service, seed, term, publish_at, message):
        lesson = seed.lesson(term)
        with pytest.raises(ValidationError) as exc_info:
            service.schedule(lesson.id, publish_at)
        assert exc_info.value.message == message
        assert seed.get_lesson(lesson.id).status is LessonStatus.DRAFT

    @pytest.mark.parametrize(
        "status", [LessonStatus.SCHEDULED, LessonStatus.PUBLISHED, LessonStatus.ARCHIVED]
    )
    def test_only_drafts(self, service, seed, term, status):
        lesson = seed.lesson(term, status=status, publish_at=T0, published_at=T0)
        with pytest.raises(InvalidStateError, match="Only draft lessons can be scheduled"):
            service.schedule(lesson.id, T0 + timedelta(days=1))
        assert seed.get_lesson(lesson.id) == lesson

    def test_unknown_lesson(self, service):
        with pytest.raises(NotFoundError):
            service.schedule("missing", T0 + timedelta(days=1))

    @pytest.mark.parametrize("publish_at", [None, "soon", T0 - timedelta(days=1)])
    def test_unknown_lesson_wins_over_bad_timestamp(self, service, publish_at):
        with pytest.raises(NotFoundError):
            service.schedule("missing", publish_at)

    @pytest.mark.parametrize(
        ("publish_at", "message"),
        [("soon", "Invalid publish_at"), (T0, "publish_at must be in the future")],
    )
    def test_bad_timestamp_wins_over_status(self, service, seed, term, publish_at, message):
        lesson = seed.lesson(term, status=LessonStatus.PUBLISHED, publish_at=T0, published_at=T0)
        with pytest.raises(ValidationError) as exc_info:
            service.schedule(lesson.id, publish_at)
        assert exc_info.value.message == message

    @pytest.mark.parametrize("publish_at", [None, ""])
    def test_status_wins_over_missing_timestamp(self, service, seed, term, publish_at):
        lesson = seed.lesson(term, status=LessonStatus.ARCHIVED)
        with pytest.raises(InvalidStateError, match="Only draft lessons can be scheduled"):
            service.schedule(lesson.id, publish_at)

    def test_apply_reports_unknown_lesson_before_timestamp(self, service):
        with pytest.raises(NotFoundError):
            service.apply("missing", {"action": "schedule", "publish_at": "yesterday"})


class TestPublishNow:
    def test_publishes_and_cascades(self, service, seed, program, term):
        lesson = seed.lesson(term)
        seed.full_thumbnails(lesson)

        updated = service.publish_now(lesson.id)

        assert updated.status is LessonStatus.PUBLISHED
        assert updated.publish_at == T0
        assert updated.published_at == T0
        published_program = seed.get_program(program.id)
        assert published_program.status is ProgramStatus.PUBLISHED
        assert published_program.published_at == T0

    def test_program_published_at_set_once(self, service, seed, clock, program, term):
        service.publish_now(seed.lesson(term).id)
        clock.advance(days=3)
        service.publish_now(seed.lesson(term).id)
        assert seed.get_program(program.id).published_at == T0

    def test_archived_program_is_not_republished(self, service, seed):
        program = seed.program(status=ProgramStatus.ARCHIVED)
        lesson = seed.lesson(seed.term(program))

        with capture_logs() as logs:
            updated = service.publish_now(lesson.id)

        assert updated.status is LessonStatus.PUBLISHED
        assert seed.get_program(program.id).status is ProgramStatus.ARCHIVED
        assert seed.get_program(program.id).published_at is None
        assert "program_cascade_skipped_archived" in [log["event"] for log in logs]

    def test_missing_thumbnail_variant_blocks_publish(self, service, seed, program, term):
        lesson = seed.lesson(term)
        seed.thumbnails(lesson, AssetVariant.PORTRAIT)

        with pytest.raises(PreconditionFailedError):
            service.publish_now(lesson.id)

        assert seed.get_lesson(lesson.id) == lesson
        assert seed.get_program(program.id).status is ProgramStatus.DRAFT

    def test_strict_policy_requires_thumbnails(self, store, seed, clock, term):
        strict = LessonStatusService(
            store, policy=ThumbnailPolicy(waive_when_empty=False), clock=clock
        )
        lesson = seed.lesson(term)
        with pytest.raises(PreconditionFailedError):
            strict.publish_now(lesson.id)

    @pytest.mark.parametrize(
        "status", [LessonStatus.SCHEDULED, LessonStatus.PUBLISHED, LessonStatus.ARCHIVED]
    )
    def test_only_drafts(self, service, seed, term, status):
        lesson = seed.lesson(term, status=status, publish_at=T0, published_at=T0)
        with pytest.raises(InvalidStateError, match="Only draft lessons can be published directly"):
            service.publish_now(lesson.id)


class TestArchive:
    @pytest.mark.parametrize(
        "status", [LessonStatus.DRAFT, LessonStatus.SCHEDULED, LessonStatus.PUBLISHED]
    )
    def test_archive_from_any_live_status(self, service, seed, term, status):
        publish_at = None if status is LessonStatus.DRAFT else T0 - timedelta(days=1)
        published_at = T0 - timedelta(hours=1) if status is LessonStatus.PUBLISHED else None
        lesson = seed.lesson(term, status=status, publish_at=publish_at, published_at=published_at)

        updated = service.archive(lesson.id)

        assert updated.status is LessonStatus.ARCHIVED
        assert updated.publish_at == publish_at
        assert updated.published_at == published_at

    def test_archived_is_terminal(self, service, seed, term):
        lesson = seed.lesson(term, status=LessonStatus.ARCHIVED)
        with pytest.raises(InvalidStateError, match="Lesson cannot be archived from this status"):
            service.archive(lesson.id)

    def test_archive_leaves_program_alone(self, service, seed, program, term):
        lesson = seed.lesson(term)
        service.publish_now(lesson.id)
        service.archive(lesson.id)
        assert seed.get_program(program.id).status is ProgramStatus.PUBLISHED


class TestApply:
    def test_dispatches_each_action(self, service, seed, term):
        scheduled = service.apply(
            seed.lesson(term).id, {"action": "schedule", "publish_at": "2030-01-01T00:00:00Z"}
        )
        published = service.apply(seed.lesson(term).id, {"action": "publish_now"})
        archived = service.apply(published.id, {"action": "archive"})

        assert scheduled.status is LessonStatus.SCHEDULED
        assert published.status is LessonStatus.PUBLISHED
        assert archived.status is LessonStatus.ARCHIVED

    def test_unknown_action_never_opens_a_transaction(self, service, seed, term):
        lesson = seed.lesson(term)
        with pytest.raises(ValidationError, match="Unknown action"):
            service.apply(lesson.id, {"action": "unpublish"})
        assert seed.get_lesson(lesson.id) == lesson

    def test_rejection_is_logged_with_context(self, service, seed, term):
        lesson = seed.lesson(term, status=LessonStatus.ARCHIVED)

        with capture_logs() as logs, pytest.raises(InvalidStateError) as exc_info:
            service.apply(lesson.id, {"action": "archive"})

        assert exc_info.value.context.lesson_id == lesson.id
        assert exc_info.value.context.action == "archive"
        [rejected] = [log for log in logs if log["event"] == "lesson_action_rejected"]
        assert rejected["code"] == "invalid_state"
        assert rejected["context"]["lesson_id"] == lesson.id

    def test_success_is_logged(self, service, seed, term):
        lesson = seed.lesson(term)
        with capture_logs() as logs:
            service.apply(lesson.id, {"action": "publish_now"})
        events = [log["event"] for log in logs]
        assert "lesson_published" in events
        assert "lesson_action_rejected" not in events
