"""Tests for LessonSpineSettings and the config factory."""

from __future__ import annotations

import pytest

from lesson_spine.core.config import (
    LessonSpineSettings,
    create_coordinator,
    create_publish_scheduler,
    create_store,
    create_thumbnail_policy,
    get_settings,
    reset_settings,
)
from lesson_spine.core.enums import StoreBackend
from lesson_spine.scheduling import ThreadSchedulerBackend
from lesson_spine.store import MemoryPublicationStore, SqlPublicationStore


class TestSettings:
    def test_defaults(self):
        settings = LessonSpineSettings(_env_file=None)
        assert settings.store_backend is StoreBackend.SQL
        assert settings.publish_interval_seconds == 60.0
        assert settings.publish_batch_size is None
        assert settings.thumbnail_waive_when_empty is True
        assert settings.is_sqlite

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LESSON_SPINE_STORE_BACKEND", "memory")
        monkeypatch.setenv("LESSON_SPINE_PUBLISH_INTERVAL_SECONDS", "5")
        monkeypatch.setenv("LESSON_SPINE_THUMBNAIL_WAIVE_WHEN_EMPTY", "false")
        monkeypatch.setenv("LESSON_SPINE_LOG_LEVEL", "debug")
        settings = LessonSpineSettings(_env_file=None)
        assert settings.store_backend is StoreBackend.MEMORY
        assert settings.publish_interval_seconds == 5.0
        assert settings.thumbnail_waive_when_empty is False
        assert settings.log_level == "DEBUG"

    def test_invalid_interval_rejected(self):
        with pytest.raises(ValueError):
            LessonSpineSettings(_env_file=None, publish_interval_seconds=0)

    def test_postgres_url_is_not_sqlite(self):
        settings = LessonSpineSettings(
            _env_file=None, database_url="postgresql+psycopg://u:p@localhost/lessons"
        )
        assert not settings.is_sqlite

    def test_get_settings_is_cached_until_reset(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first
        monkeypatch.setenv("LESSON_SPINE_SERVICE_NAME", "publisher-2")
        reset_settings()
        assert get_settings() is not first
        assert get_settings().service_name == "publisher-2"


class TestFactory:
    def test_memory_store(self):
        settings = LessonSpineSettings(
            _env_file=None, store_backend="memory", lock_timeout_seconds=3
        )
        store = create_store(settings)
        assert isinstance(store, MemoryPublicationStore)
        assert store.lock_timeout_seconds == 3

    def test_sql_store(self, tmp_path):
        settings = LessonSpineSettings(
            _env_file=None, database_url=f"sqlite:///{tmp_path / 'nested' / 'lessons.db'}"
        )
        store = create_store(settings)
        try:
            assert isinstance(store, SqlPublicationStore)
            store.create_schema()
            assert (tmp_path / "nested" / "lessons.db").exists()
        finally:
            store.dispose()

    def test_policy_follows_settings(self):
        settings = LessonSpineSettings(_env_file=None, thumbnail_waive_when_empty=False)
        assert create_thumbnail_policy(settings).waive_when_empty is False

    def test_coordinator_and_scheduler(self):
        settings = LessonSpineSettings(
            _env_file=None,
            store_backend="memory",
            publish_batch_size=25,
            publish_interval_seconds=15,
            publish_tick_on_start=False,
        )
        store = create_store(settings)
        assert create_coordinator(settings, store).batch_size == 25

        scheduler = create_publish_scheduler(settings, store)
        assert isinstance(scheduler.backend, ThreadSchedulerBackend)
        assert scheduler.interval == 15
        assert scheduler.tick_on_start is False
        assert scheduler.coordinator.store is store
