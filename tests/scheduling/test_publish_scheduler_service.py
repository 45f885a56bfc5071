"""Tests for PublishSchedulerService."""

from datetime import UTC, datetime, timedelta

import pytest

from lesson_spine.core.errors import InternalFailureError
from lesson_spine.publishing import ScheduledPublishCoordinator, TickSummary
from lesson_spine.scheduling import BackendHealth, PublishSchedulerService
from tests._support.builders import T0


class RecordingBackend:
    """Backend that records lifecycle calls instead of running a thread."""

    name = "recording"

    def __init__(self):
        self.started_with = None
        self.stopped = False
        self.healthy = True

    def start(self, tick_callback, interval_seconds=60.0, run_immediately=False):
        self.started_with = (tick_callback, interval_seconds, run_immediately)

    def stop(self):
        self.stopped = True

    def health(self):
        return BackendHealth(backend=self.name, running=self.healthy)


class StubCoordinator:
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def tick(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _summary(published=0, skipped=0):
    return TickSummary(
        started_at=T0,
        due_count=published + skipped,
        published_count=published,
        skipped_count=skipped,
    )


@pytest.fixture
def backend():
    return RecordingBackend()


class TestLifecycle:
    """Start/stop delegate to the backend."""

    def test_start_passes_interval_and_tick_on_start(self, backend):
        service = PublishSchedulerService(
            backend, StubCoordinator([]), interval_seconds=15.0, tick_on_start=False
        )
        service.start()

        callback, interval, immediately = backend.started_with
        assert callback == service._tick
        assert interval == 15.0
        assert immediately is False
        assert service.is_running

    def test_double_start_ignored(self, backend):
        service = PublishSchedulerService(backend, StubCoordinator([]))
        service.start()
        backend.started_with = None
        service.start()
        assert backend.started_with is None

    def test_stop(self, backend):
        service = PublishSchedulerService(backend, StubCoordinator([]))
        service.stop()
        assert backend.stopped is False

        service.start()
        service.stop()
        assert backend.stopped is True
        assert not service.is_running


class TestTicks:
    """Tick results accumulate into stats."""

    def test_run_once_records_summary(self, backend):
        summary = _summary(published=2, skipped=1)
        service = PublishSchedulerService(backend, StubCoordinator([summary]))

        assert service.run_once() is summary

        stats = service.get_stats()
        assert stats.tick_count == 1
        assert stats.lessons_published == 2
        assert stats.lessons_skipped == 1
        assert stats.last_summary is summary
        assert stats.last_tick is not None

    def test_run_once_raises_failures(self, backend):
        service = PublishSchedulerService(
            backend, StubCoordinator([InternalFailureError("Publish tick failed")])
        )
        with pytest.raises(InternalFailureError):
            service.run_once()
        assert service.get_stats().ticks_failed == 1
        assert service.get_stats().last_error == "Publish tick failed"

    @pytest.mark.asyncio
    async def test_tick_swallows_failures(self, backend):
        coordinator = StubCoordinator(
            [InternalFailureError("Publish tick failed"), _summary(published=1)]
        )
        service = PublishSchedulerService(backend, coordinator)

        await service._tick()
        await service._tick()

        stats = service.get_stats()
        assert coordinator.calls == 2
        assert stats.tick_count == 2
        assert stats.ticks_failed == 1
        assert stats.lessons_published == 1
        assert stats.last_error is None

    @pytest.mark.asyncio
    async def test_tick_publishes_through_real_coordinator(self, backend, store, seed, clock):
        lesson = seed.scheduled_lesson(seed.term(seed.program()), T0 - timedelta(minutes=1))
        service = PublishSchedulerService(
            backend, ScheduledPublishCoordinator(store, clock=clock)
        )

        await service._tick()

        assert service.get_stats().lessons_published == 1
        assert seed.get_lesson(lesson.id).status.value == "published"

    def test_reset_stats(self, backend):
        service = PublishSchedulerService(backend, StubCoordinator([_summary(published=1)]))
        service.run_once()
        service.reset_stats()
        assert service.get_stats().tick_count == 0


class TestHealth:
    """Health combines backend state with tick staleness."""

    def test_not_running_is_unhealthy(self, backend):
        health = PublishSchedulerService(backend, StubCoordinator([])).health()
        assert health.healthy is False
        assert health.stale is False

    def test_running_and_fresh(self, backend):
        service = PublishSchedulerService(
            backend, StubCoordinator([_summary()]), interval_seconds=60.0
        )
        service.start()
        service.run_once()

        health = service.health()
        assert health.healthy is True
        assert health.to_dict()["backend"]["backend"] == "recording"
        assert health.to_dict()["stats"]["tick_count"] == 1

    def test_stale_after_three_missed_intervals(self, backend):
        service = PublishSchedulerService(backend, StubCoordinator([]), interval_seconds=10.0)
        service.start()
        service.get_stats().last_tick = datetime.now(UTC) - timedelta(seconds=31)

        health = service.health()
        assert health.stale is True
        assert health.healthy is False

    def test_unhealthy_backend(self, backend):
        service = PublishSchedulerService(backend, StubCoordinator([]))
        service.start()
        backend.healthy = False
        assert service.health().healthy is False
