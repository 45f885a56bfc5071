"""SQLAlchemy engine and session factories.

Lock waits are bounded on every dialect so an author holding a lesson row
cannot stall a publish worker forever:

* PostgreSQL: ``lock_timeout`` is set on each connection; ``FOR UPDATE``
  fails with a lock-not-available error once it elapses.
* SQLite has no row locks and ignores ``FOR UPDATE``. Every transaction
  starts with ``BEGIN IMMEDIATE`` instead, so the database write lock is
  taken up front and held until commit, and ``busy_timeout`` bounds the
  wait for it. Writers are serialized, which is the SQLite stand-in for
  the row locks the store relies on.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0


def create_store_engine(
    url: str | URL = "sqlite:///data/lesson_spine.db",
    *,
    echo: bool = False,
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    pool_size: int | None = None,
    max_overflow: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create the engine behind :class:`~lesson_spine.store.SqlPublicationStore`.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///data/lessons.db``, ``postgresql+psycopg://...``).
        Parent directories of a SQLite file are created.
    echo:
        Log all SQL.
    lock_timeout_seconds:
        Longest a transaction waits for a lock before failing.
    pool_size, max_overflow:
        Connection pool parameters (ignored for SQLite).
    **kwargs:
        Forwarded to ``sqlalchemy.create_engine``.
    """
    url = make_url(url)
    timeout_ms = int(lock_timeout_seconds * 1000)

    if url.get_backend_name() == "sqlite":
        return _sqlite_engine(url, echo=echo, timeout_ms=timeout_ms, **kwargs)

    if url.get_backend_name() == "postgresql":
        connect_args = kwargs.setdefault("connect_args", {})
        connect_args.setdefault("options", f"-c lock_timeout={timeout_ms}")

    kwargs.setdefault("pool_pre_ping", True)
    if pool_size is not None:
        kwargs["pool_size"] = pool_size
    if max_overflow is not None:
        kwargs["max_overflow"] = max_overflow
    return _sa_create_engine(url, echo=echo, **kwargs)


def _sqlite_engine(url: URL, *, echo: bool, timeout_ms: int, **kwargs: Any) -> Engine:
    database = url.database
    if database and database != ":memory:" and not database.startswith("file:"):
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = _sa_create_engine(url, echo=echo, **kwargs)

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection: Any, _record: Any) -> None:
        # Hand transaction control to the "begin" hook below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={timeout_ms}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection: Any) -> None:
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


class LessonSpineSession(Session):
    """``Session`` with ``expire_on_commit=False``.

    The store converts rows to frozen records before commit; keeping
    attributes loaded means a stray ORM object never lazy-loads on a
    closed session.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def lesson_session_factory(engine: Engine) -> sessionmaker[LessonSpineSession]:
    """Return a ``sessionmaker`` bound to *engine* producing ``LessonSpineSession``."""
    return sessionmaker(bind=engine, class_=LessonSpineSession)
