"""Tests for the publish worker loop."""

from __future__ import annotations

import threading
import time

from structlog.testing import capture_logs

from lesson_spine.core.config import LessonSpineSettings
from lesson_spine.worker import run_worker


def test_worker_runs_until_stopped():
    settings = LessonSpineSettings(
        _env_file=None,
        store_backend="memory",
        publish_interval_seconds=0.05,
        publish_tick_on_start=True,
    )
    stop_event = threading.Event()

    with capture_logs() as logs:
        worker = threading.Thread(target=run_worker, args=(settings, stop_event))
        worker.start()
        deadline = time.monotonic() + 2.0
        while time.monotonic() < deadline:
            if sum(log["event"] == "publish_tick_complete" for log in logs) >= 2:
                break
            time.sleep(0.01)
        stop_event.set()
        worker.join(timeout=5)

    assert not worker.is_alive()
    events = [log["event"] for log in logs]
    assert events[0] == "worker_starting"
    assert events.count("publish_tick_complete") >= 2
    [stopped] = [log for log in logs if log["event"] == "worker_stopped"]
    assert stopped["tick_count"] >= 2
    assert stopped["ticks_failed"] == 0
