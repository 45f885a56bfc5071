"""Publish scheduler service.

Manifesto:
    The service joins a timing backend to the scheduled-publish
    coordinator. The backend fires ``_tick`` on its interval; ``_tick`` runs
    one coordinator tick and records what happened. A failing tick is
    logged and counted but never stops the loop: the next interval simply
    retries the due set.

Tags:
    lesson-spine, scheduling, beat-as-poller, service

┌──────────────────────────────────────────────────────────────────────────────┐
│  PublishSchedulerService                                                      │
│                                                                               │
│   ┌─────────────────┐  _tick()  ┌──────────────────────────────────────┐     │
│   │  Backend        │ ────────► │ coordinator.tick() -> TickSummary    │     │
│   │  (timing)       │           │   ok:     stats.lessons_published += │     │
│   └─────────────────┘           │   failed: stats.ticks_failed += 1,   │     │
│                                 │           stats.last_error = ...     │     │
│                                 └──────────────────────────────────────┘     │
│                                                                               │
│   Public API:                                                                 │
│   ├── start() / stop()   Backend loop lifecycle                               │
│   ├── run_once()         One synchronous tick (CLI, tests)                    │
│   ├── health()           Backend + staleness + stats                          │
│   └── get_stats() / reset_stats()                                             │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from lesson_spine.core.errors import LessonSpineError
from lesson_spine.core.logging import get_logger
from lesson_spine.publishing.coordinator import ScheduledPublishCoordinator, TickSummary
from lesson_spine.scheduling.protocol import BackendHealth, SchedulerBackend

logger = get_logger(__name__)


@dataclass
class PublishSchedulerStats:
    """Counters for the publish scheduler."""

    tick_count: int = 0
    ticks_failed: int = 0
    lessons_published: int = 0
    lessons_skipped: int = 0
    last_tick: datetime | None = None
    last_error: str | None = None
    last_summary: TickSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tick_count": self.tick_count,
            "ticks_failed": self.ticks_failed,
            "lessons_published": self.lessons_published,
            "lessons_skipped": self.lessons_skipped,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "last_error": self.last_error,
        }


@dataclass
class PublishSchedulerHealth:
    """Health status for the publish scheduler."""

    healthy: bool
    backend: BackendHealth
    last_tick: datetime | None = None
    stale: bool = False
    stats: PublishSchedulerStats = field(default_factory=PublishSchedulerStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend.to_dict(),
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "stale": self.stale,
            "stats": self.stats.to_dict(),
        }


class PublishSchedulerService:
    """Runs the scheduled-publish coordinator on a backend's interval.

    Example:
        >>> service = PublishSchedulerService(
        ...     backend=ThreadSchedulerBackend(),
        ...     coordinator=ScheduledPublishCoordinator(store),
        ...     interval_seconds=60.0,
        ... )
        >>> service.start()
        >>> # Later...
        >>> service.stop()
    """

    #: A running service whose last tick is older than this many intervals is stale.
    STALE_AFTER_INTERVALS = 3

    def __init__(
        self,
        backend: SchedulerBackend,
        coordinator: ScheduledPublishCoordinator,
        interval_seconds: float = 60.0,
        tick_on_start: bool = True,
    ) -> None:
        self.backend = backend
        self.coordinator = coordinator
        self.interval = interval_seconds
        self.tick_on_start = tick_on_start

        self._stats = PublishSchedulerStats()
        self._running = False

    # === Lifecycle ===

    def start(self) -> None:
        if self._running:
            logger.warning("publish_scheduler_already_running")
            return

        logger.info(
            "publish_scheduler_starting",
            backend=self.backend.name,
            interval_seconds=self.interval,
            tick_on_start=self.tick_on_start,
        )
        self.backend.start(self._tick, self.interval, run_immediately=self.tick_on_start)
        self._running = True

    def stop(self) -> None:
        """Stop the backend loop, letting a running tick finish."""
        if not self._running:
            return

        logger.info("publish_scheduler_stopping")
        self.backend.stop()
        self._running = False
        logger.info("publish_scheduler_stopped", **self._stats.to_dict())

    @property
    def is_running(self) -> bool:
        return self._running

    # === Tick Processing ===

    def run_once(self) -> TickSummary:
        """Run one coordinator tick synchronously and record it.

        Raises:
            LessonSpineError: The tick failed and was rolled back.
        """
        self._stats.tick_count += 1
        self._stats.last_tick = datetime.now(UTC)
        try:
            summary = self.coordinator.tick()
        except LessonSpineError as exc:
            self._stats.ticks_failed += 1
            self._stats.last_error = exc.message
            raise

        self._stats.lessons_published += summary.published_count
        self._stats.lessons_skipped += summary.skipped_count
        self._stats.last_summary = summary
        self._stats.last_error = None
        return summary

    async def _tick(self) -> None:
        """Backend callback. Failures are recorded, never raised into the loop."""
        try:
            self.run_once()
        except LessonSpineError as exc:
            # Already logged by the coordinator as publish_tick_failed.
            logger.debug("publish_scheduler_tick_failed", code=exc.code, retryable=exc.retryable)

    # === Health & Stats ===

    def health(self) -> PublishSchedulerHealth:
        backend_health = self.backend.health()
        last_tick = self._stats.last_tick
        stale = (
            self._running
            and last_tick is not None
            and (datetime.now(UTC) - last_tick).total_seconds()
            > self.interval * self.STALE_AFTER_INTERVALS
        )
        return PublishSchedulerHealth(
            healthy=self._running and backend_health.healthy and not stale,
            backend=backend_health,
            last_tick=last_tick,
            stale=stale,
            stats=self._stats,
        )

    def get_stats(self) -> PublishSchedulerStats:
        return self._stats

    def reset_stats(self) -> None:
        self._stats = PublishSchedulerStats()


__all__ = [
    "PublishSchedulerHealth",
    "PublishSchedulerService",
    "PublishSchedulerStats",
]
