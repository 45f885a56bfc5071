"""Row-lock, skip-locked and isolation semantics of the in-memory store."""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from datetime import timedelta

import pytest

from lesson_spine.core.enums import LessonStatus
from lesson_spine.core.errors import ConflictError, InternalFailureError
from lesson_spine.core.models import new_id
from lesson_spine.store import MemoryPublicationStore
from tests._support.builders import T0, Seeder


@pytest.fixture
def fast_store():
    store = MemoryPublicationStore(lock_timeout_seconds=0.2)
    yield store
    store.dispose()


class TestRowLocks:
    def test_lock_wait_times_out(self, fast_store):
        seed = Seeder(fast_store)
        lesson = seed.lesson(seed.term(seed.program()))

        with fast_store.transaction() as holder:
            holder.get_lesson(lesson.id, for_update=True)
            with pytest.raises(InternalFailureError, match="row lock"):
                with fast_store.transaction() as waiter:
                    waiter.get_lesson(lesson.id, for_update=True)

    def test_locks_released_on_commit_and_rollback(self, memory_store, memory_seed):
        lesson = memory_seed.lesson(memory_seed.term(memory_seed.program()))

        with memory_store.transaction() as tx:
            tx.mark_scheduled(lesson.id, T0)
            assert memory_store.locked_rows() == {("lessons", lesson.id): tx.txn_id}
        assert memory_store.locked_rows() == {}

        with pytest.raises(RuntimeError):
            with memory_store.transaction() as tx:
                tx.get_lesson(lesson.id, for_update=True)
                raise RuntimeError("boom")
        assert memory_store.locked_rows() == {}

    def test_blocked_writer_sees_committed_state(self, memory_store, memory_seed):
        lesson = memory_seed.lesson(memory_seed.term(memory_seed.program()))
        results = []

        def second_writer():
            with memory_store.transaction() as tx:
                results.append(tx.mark_scheduled(lesson.id, T0 + timedelta(days=2)))

        with memory_store.transaction() as first:
            first.mark_scheduled(lesson.id, T0 + timedelta(days=1))
            thread = threading.Thread(target=second_writer)
            thread.start()
            time.sleep(0.1)
            assert thread.is_alive()
        thread.join(timeout=2)

        assert results == [None]
        assert memory_seed.get_lesson(lesson.id).publish_at == T0 + timedelta(days=1)

    def test_closed_transaction_rejects_writes(self, memory_store, memory_seed):
        lesson = memory_seed.lesson(memory_seed.term(memory_seed.program()))
        with memory_store.transaction() as tx:
            pass
        with pytest.raises(InternalFailureError):
            tx.mark_archived(lesson.id)


class TestSkipLocked:
    def test_claim_skips_rows_locked_elsewhere(self, memory_store, memory_seed):
        term = memory_seed.term(memory_seed.program())
        held = memory_seed.scheduled_lesson(term, T0 - timedelta(minutes=2))
        free = memory_seed.scheduled_lesson(term, T0 - timedelta(minutes=1))

        with memory_store.transaction() as holder:
            holder.get_lesson(held.id, for_update=True)
            started = time.monotonic()
            with memory_store.transaction() as claimer:
                due = claimer.claim_due_lessons(T0)
            assert time.monotonic() - started < 1.0

        assert [lesson.id for lesson in due] == [free.id]

    def test_limit_counts_only_claimed_rows(self, memory_store, memory_seed):
        term = memory_seed.term(memory_seed.program())
        held = memory_seed.scheduled_lesson(term, T0 - timedelta(minutes=3))
        second = memory_seed.scheduled_lesson(term, T0 - timedelta(minutes=2))
        memory_seed.scheduled_lesson(term, T0 - timedelta(minutes=1))

        with memory_store.transaction() as holder:
            holder.get_lesson(held.id, for_update=True)
            with memory_store.transaction() as claimer:
                due = claimer.claim_due_lessons(T0, limit=1)

        assert [lesson.id for lesson in due] == [second.id]


class TestIsolation:
    def test_uncommitted_writes_are_invisible(self, memory_store, memory_seed):
        lesson = memory_seed.lesson(memory_seed.term(memory_seed.program()))

        with memory_store.transaction() as writer:
            writer.mark_scheduled(lesson.id, T0)
            with memory_store.transaction() as reader:
                assert reader.get_lesson(lesson.id).status is LessonStatus.DRAFT
                assert reader.claim_due_lessons(T0) == []

        assert memory_seed.get_lesson(lesson.id).status is LessonStatus.SCHEDULED

    def test_uniqueness_rechecked_at_commit(self, memory_store, memory_seed):
        term = memory_seed.term(memory_seed.program())
        template = memory_seed.lesson(term)
        number = template.lesson_number + 100

        with pytest.raises(ConflictError):
            with memory_store.transaction() as outer:
                outer.insert_lesson(replace(template, id=new_id(), lesson_number=number))
                with memory_store.transaction() as inner:
                    inner.insert_lesson(replace(template, id=new_id(), lesson_number=number))

        with memory_store.transaction() as tx:
            numbers = [lesson.lesson_number for lesson in tx.list_lessons(term.id)]
        assert numbers.count(number) == 1
