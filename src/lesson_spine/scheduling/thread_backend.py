"""Daemon-thread timing backend, the default for ``lesson-spine worker start``.

Ticks run at a fixed rate measured from the loop's start, not from the end
of the previous tick, so a slow tick does not push every later publish back.
A tick that overruns one or more slots makes the loop skip those slots
rather than fire a burst of catch-up ticks: due lessons are claimed by
``publish_at <= now``, so one late tick publishes everything that piled up.

One event loop lives for the life of the thread and runs every tick.
"""

from __future__ import annotations

import asyncio
import threading
import time
from datetime import UTC, datetime

from lesson_spine.core.logging import get_logger
from lesson_spine.scheduling.protocol import BackendHealth, TickCallback

logger = get_logger(__name__)


class ThreadSchedulerBackend:
    """Run the tick callback on a daemon thread.

    Example:
        >>> backend = ThreadSchedulerBackend()
        >>> backend.start(service._tick, interval_seconds=30.0, run_immediately=True)
        >>> backend.health().running
        True
        >>> backend.stop()
    """

    name = "thread"

    def __init__(self, join_timeout_seconds: float = 30.0, thread_name: str = "lesson-publisher"):
        self.join_timeout_seconds = join_timeout_seconds
        self.thread_name = thread_name

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._interval: float | None = None
        self._tick_count = 0
        self._failed_ticks = 0
        self._missed_slots = 0
        self._last_tick: datetime | None = None
        self._last_duration: float | None = None
        self._last_error: str | None = None

    def start(
        self,
        tick_callback: TickCallback,
        interval_seconds: float = 60.0,
        run_immediately: bool = False,
    ) -> None:
        if self.is_running:
            logger.warning("scheduler_backend_already_started", backend=self.name)
            return
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._interval = interval_seconds
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(tick_callback, interval_seconds, run_immediately),
            name=self.thread_name,
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        thread.join(timeout=self.join_timeout_seconds)
        if thread.is_alive():
            logger.warning(
                "scheduler_thread_still_running",
                backend=self.name,
                join_timeout_seconds=self.join_timeout_seconds,
            )
            return
        self._thread = None

    # === Loop ===

    def _loop(self, tick_callback: TickCallback, interval: float, run_immediately: bool) -> None:
        logger.info(
            "scheduler_backend_started",
            backend=self.name,
            interval_seconds=interval,
            run_immediately=run_immediately,
        )
        with asyncio.Runner() as runner:
            next_due = time.monotonic() + (0.0 if run_immediately else interval)
            while not self._stop_event.wait(max(0.0, next_due - time.monotonic())):
                self._run_tick(runner, tick_callback)
                next_due += interval
                now = time.monotonic()
                if next_due <= now:
                    missed = int((now - next_due) // interval) + 1
                    next_due += missed * interval
                    with self._lock:
                        self._missed_slots += missed
                    logger.warning(
                        "scheduler_tick_overran",
                        backend=self.name,
                        missed_slots=missed,
                        last_tick_duration_seconds=self._last_duration,
                    )
        logger.info("scheduler_backend_stopped", backend=self.name, tick_count=self._tick_count)

    def _run_tick(self, runner: asyncio.Runner, tick_callback: TickCallback) -> None:
        started = time.monotonic()
        with self._lock:
            self._tick_count += 1
            self._last_tick = datetime.now(UTC)
        error: str | None = None
        try:
            runner.run(tick_callback())
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            logger.error("scheduler_tick_crashed", backend=self.name, error=error, exc_info=True)
        with self._lock:
            self._last_duration = time.monotonic() - started
            self._last_error = error
            if error is not None:
                self._failed_ticks += 1

    # === Introspection ===

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def missed_slots(self) -> int:
        return self._missed_slots

    def health(self) -> BackendHealth:
        with self._lock:
            return BackendHealth(
                backend=self.name,
                running=self.is_running,
                interval_seconds=self._interval,
                tick_count=self._tick_count,
                failed_ticks=self._failed_ticks,
                last_tick=self._last_tick,
                last_tick_duration_seconds=self._last_duration,
                last_error=self._last_error,
            )


__all__ = ["ThreadSchedulerBackend"]
