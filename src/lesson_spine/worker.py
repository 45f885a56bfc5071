"""Publish worker entry point.

Runs the scheduled-publish coordinator on its interval until SIGINT or
SIGTERM. Any number of workers may run against the same database.
"""

from __future__ import annotations

import signal
import threading

from lesson_spine.core.config import (
    LessonSpineSettings,
    create_publish_scheduler,
    create_store,
    get_settings,
)
from lesson_spine.core.logging import get_logger

logger = get_logger(__name__)


def run_worker(
    settings: LessonSpineSettings | None = None,
    stop_event: threading.Event | None = None,
) -> None:
    """Run the worker process until a shutdown signal arrives.

    Args:
        settings: Settings to build the store and scheduler from
            (cached settings by default).
        stop_event: Set it to stop the worker. Signal handlers are only
            installed when called from the main thread.
    """
    settings = settings or get_settings()
    stop_event = stop_event or threading.Event()

    logger.info(
        "worker_starting",
        store_backend=settings.store_backend.value,
        interval_seconds=settings.publish_interval_seconds,
        batch_size=settings.publish_batch_size,
    )

    store = create_store(settings)
    scheduler = create_publish_scheduler(settings, store)

    def shutdown(signum: int, frame: object) -> None:
        logger.info("shutdown_signal_received", signal=signum)
        stop_event.set()

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, shutdown)
        signal.signal(signal.SIGTERM, shutdown)

    scheduler.start()
    logger.info("worker_running", message="Press Ctrl+C to stop")
    try:
        while not stop_event.wait(1.0):
            pass
    finally:
        scheduler.stop()
        store.dispose()
        logger.info("worker_stopped", **scheduler.get_stats().to_dict())


if __name__ == "__main__":
    run_worker()
