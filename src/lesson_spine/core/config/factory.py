"""
Factory functions that build runtime components from settings.

Features:
    - ``create_database_engine()`` -- SQLAlchemy engine for the SQL store
    - ``create_store()`` -- SQL / memory publication store
    - ``create_thumbnail_policy()`` -- publish precondition policy
    - ``create_status_service()`` -- synchronous author actions
    - ``create_coordinator()`` -- scheduled-publish coordinator
    - ``create_publish_scheduler()`` -- thread backend + coordinator service

Tags:
    lesson-spine, configuration, factory-pattern, sqlalchemy
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lesson_spine.core.enums import StoreBackend
from lesson_spine.core.timestamps import Clock, utc_now

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from lesson_spine.publishing import (
        LessonStatusService,
        ScheduledPublishCoordinator,
        ThumbnailPolicy,
    )
    from lesson_spine.scheduling import PublishSchedulerService
    from lesson_spine.store import PublicationStore

    from .settings import LessonSpineSettings


def create_database_engine(settings: LessonSpineSettings) -> Engine:
    """Create a SQLAlchemy :class:`~sqlalchemy.engine.Engine`.

    ``lock_timeout_seconds`` bounds lock waits on both dialects; pool sizing
    only applies outside SQLite.
    """
    from lesson_spine.core.orm.session import create_store_engine

    if settings.is_sqlite:
        return create_store_engine(
            settings.database_url,
            echo=settings.database_echo,
            lock_timeout_seconds=settings.lock_timeout_seconds,
        )
    return create_store_engine(
        settings.database_url,
        echo=settings.database_echo,
        lock_timeout_seconds=settings.lock_timeout_seconds,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


def create_store(settings: LessonSpineSettings) -> PublicationStore:
    """Create the publication store selected by *settings.store_backend*."""
    match settings.store_backend:
        case StoreBackend.SQL:
            from lesson_spine.store.sql import SqlPublicationStore

            return SqlPublicationStore(create_database_engine(settings))
        case StoreBackend.MEMORY:
            from lesson_spine.store.memory import MemoryPublicationStore

            return MemoryPublicationStore(lock_timeout_seconds=settings.lock_timeout_seconds)


def create_thumbnail_policy(settings: LessonSpineSettings) -> ThumbnailPolicy:
    from lesson_spine.publishing.preconditions import ThumbnailPolicy

    return ThumbnailPolicy(waive_when_empty=settings.thumbnail_waive_when_empty)


def create_status_service(
    settings: LessonSpineSettings,
    store: PublicationStore,
    clock: Clock = utc_now,
) -> LessonStatusService:
    from lesson_spine.publishing.transitions import LessonStatusService

    return LessonStatusService(store, policy=create_thumbnail_policy(settings), clock=clock)


def create_coordinator(
    settings: LessonSpineSettings,
    store: PublicationStore,
    clock: Clock = utc_now,
) -> ScheduledPublishCoordinator:
    from lesson_spine.publishing.coordinator import ScheduledPublishCoordinator

    return ScheduledPublishCoordinator(
        store,
        policy=create_thumbnail_policy(settings),
        clock=clock,
        batch_size=settings.publish_batch_size,
    )


def create_publish_scheduler(
    settings: LessonSpineSettings,
    store: PublicationStore,
    clock: Clock = utc_now,
) -> PublishSchedulerService:
    """Thread backend driving a coordinator on ``publish_interval_seconds``."""
    from lesson_spine.scheduling import PublishSchedulerService, ThreadSchedulerBackend

    return PublishSchedulerService(
        backend=ThreadSchedulerBackend(),
        coordinator=create_coordinator(settings, store, clock),
        interval_seconds=settings.publish_interval_seconds,
        tick_on_start=settings.publish_tick_on_start,
    )


__all__ = [
    "create_coordinator",
    "create_database_engine",
    "create_publish_scheduler",
    "create_status_service",
    "create_store",
    "create_thumbnail_policy",
]
