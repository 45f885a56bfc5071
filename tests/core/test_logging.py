"""Tests for structured logging configuration."""

from __future__ import annotations

import io
import json
import logging
from datetime import datetime, timedelta, timezone

import pytest
import structlog

from lesson_spine.core.enums import LessonStatus
from lesson_spine.core.logging import LogContext, configure_logging, get_logger


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in ("sqlalchemy.engine", "sqlalchemy.pool"):
        logging.getLogger(name).setLevel(logging.NOTSET)


def _records(buffer: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in buffer.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    def test_json_records_are_ecs_shaped(self, restore_logging):
        buffer = io.StringIO()
        configure_logging(level="INFO", json_format=True, service="publisher-test", stream=buffer)

        get_logger("tests.logging").info("lesson_scheduled", lesson_id="l-1")

        [record] = _records(buffer)
        assert record["event"] == "lesson_scheduled"
        assert record["lesson_id"] == "l-1"
        assert record["log.level"] == "info"
        assert record["service.name"] == "publisher-test"
        assert "@timestamp" in record

    def test_level_filters_records(self, restore_logging):
        buffer = io.StringIO()
        configure_logging(level="WARNING", json_format=True, stream=buffer)

        logger = get_logger("tests.logging.level")
        logger.info("publish_tick_complete")
        logger.warning("publish_skipped_missing_thumbnails", lesson_id="l-2")

        assert [r["event"] for r in _records(buffer)] == ["publish_skipped_missing_thumbnails"]

    def test_log_context_binds_and_unbinds(self, restore_logging):
        buffer = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=buffer)

        logger = get_logger("tests.logging.context")
        with LogContext(tick_id="abc123"):
            logger.info("publish_tick_complete")
        logger.info("worker_stopped")

        inside, outside = _records(buffer)
        assert inside["tick_id"] == "abc123"
        assert "tick_id" not in outside

    def test_statuses_and_datetimes_render_as_plain_values(self, restore_logging):
        buffer = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=buffer)

        ist = timezone(timedelta(hours=5, minutes=30))
        get_logger("tests.logging.values").info(
            "lesson_published",
            status=LessonStatus.PUBLISHED,
            published_at=datetime(2026, 10, 18, 15, 30, tzinfo=ist),
        )

        [record] = _records(buffer)
        assert record["status"] == "published"
        assert record["published_at"] == "2026-10-18T10:00:00+00:00"

    def test_sqlalchemy_engine_logs_only_pass_at_debug(self, restore_logging):
        configure_logging(level="INFO", json_format=True, stream=io.StringIO())
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

        configure_logging(level="DEBUG", json_format=True, stream=io.StringIO())
        assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG


class TestLogContext:
    def test_nested_context_restores_outer_value(self, restore_logging):
        buffer = io.StringIO()
        configure_logging(level="INFO", json_format=True, stream=buffer)

        logger = get_logger("tests.logging.nested")
        with LogContext(tick_id="outer"):
            with LogContext(tick_id="inner", lesson_id="l-9"):
                logger.info("publish_lesson_claimed")
            logger.info("publish_tick_complete")

        inner, outer = _records(buffer)
        assert (inner["tick_id"], inner["lesson_id"]) == ("inner", "l-9")
        assert outer["tick_id"] == "outer"
        assert "lesson_id" not in outer
