"""
Shared pytest fixtures for lesson-spine tests.

This module provides:
- A pinned, advanceable clock
- ``store`` parametrized over the SQL (SQLite file) and memory stores
- ``seed`` for inserting programs, terms and lessons in any status
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from lesson_spine.core.config import reset_settings
from lesson_spine.store import MemoryPublicationStore, PublicationStore, SqlPublicationStore
from tests._support.builders import FixedClock, Seeder, make_sql_store


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(params=["sql", "memory"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[PublicationStore]:
    """Each store-agnostic test runs once per backend."""
    if request.param == "sql":
        backend: PublicationStore = make_sql_store(tmp_path / "lessons.db")
    else:
        backend = MemoryPublicationStore(lock_timeout_seconds=2.0)
    yield backend
    backend.dispose()


@pytest.fixture
def memory_store() -> Iterator[MemoryPublicationStore]:
    backend = MemoryPublicationStore(lock_timeout_seconds=2.0)
    yield backend
    backend.dispose()


@pytest.fixture
def sql_store(tmp_path: Path) -> Iterator[SqlPublicationStore]:
    backend = make_sql_store(tmp_path / "lessons.db")
    yield backend
    backend.dispose()


@pytest.fixture
def seed(store: PublicationStore) -> Seeder:
    return Seeder(store)


@pytest.fixture
def memory_seed(memory_store: MemoryPublicationStore) -> Seeder:
    return Seeder(memory_store)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    reset_settings()
    yield
    reset_settings()
