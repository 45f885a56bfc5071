"""Recurring scheduler harness for the publish coordinator.

Modules
-------
protocol        SchedulerBackend contract, BackendHealth
thread_backend  ThreadSchedulerBackend (daemon thread, fixed-rate cadence)
service         PublishSchedulerService: backend tick -> coordinator.tick()
"""

from lesson_spine.scheduling.protocol import BackendHealth, SchedulerBackend, TickCallback
from lesson_spine.scheduling.service import (
    PublishSchedulerHealth,
    PublishSchedulerService,
    PublishSchedulerStats,
)
from lesson_spine.scheduling.thread_backend import ThreadSchedulerBackend

__all__ = [
    "BackendHealth",
    "PublishSchedulerHealth",
    "PublishSchedulerService",
    "PublishSchedulerStats",
    "SchedulerBackend",
    "ThreadSchedulerBackend",
    "TickCallback",
]
