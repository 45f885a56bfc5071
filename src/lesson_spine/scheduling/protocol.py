"""Timing backends for the publish worker.

A backend owns the cadence and nothing else. :class:`PublishSchedulerService`
hands it an async callback that runs one coordinator tick::

    backend ──(every interval)──► service._tick() ──► coordinator.tick()

Workers in separate processes each run their own backend against the same
database. They never talk to each other; the coordinator's skip-locked claim
is what keeps two workers from publishing the same lesson.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

TickCallback = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class BackendHealth:
    """Point-in-time view of a backend's loop."""

    backend: str
    running: bool
    interval_seconds: float | None = None
    tick_count: int = 0
    failed_ticks: int = 0
    last_tick: datetime | None = None
    last_tick_duration_seconds: float | None = None
    last_error: str | None = None

    @property
    def healthy(self) -> bool:
        return self.running

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "tick_count": self.tick_count,
            "failed_ticks": self.failed_ticks,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "last_tick_duration_seconds": self.last_tick_duration_seconds,
            "last_error": self.last_error,
        }


@runtime_checkable
class SchedulerBackend(Protocol):
    """What the publish scheduler needs from a timing backend.

    Ticks from one backend must not overlap: the coordinator relies on one
    in-flight tick per worker so its batch size bounds the rows it holds.
    """

    name: str

    def start(
        self,
        tick_callback: TickCallback,
        interval_seconds: float = 60.0,
        run_immediately: bool = False,
    ) -> None:
        """Begin calling ``tick_callback`` every ``interval_seconds``.

        With ``run_immediately`` the first tick fires at once rather than
        after one interval. Calling ``start`` on a running backend is a no-op.
        """
        ...

    def stop(self) -> None:
        """Stop ticking, letting a tick that is already running finish."""
        ...

    def health(self) -> BackendHealth: ...


__all__ = ["BackendHealth", "SchedulerBackend", "TickCallback"]
