"""CLI fixtures: a file-backed SQLite store and quiet logging."""

import logging

import pytest
import structlog
from typer.testing import CliRunner

from lesson_spine.core.config import reset_settings


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway database and keep log records off stdout."""
    monkeypatch.setenv("LESSON_SPINE_STORE_BACKEND", "sql")
    monkeypatch.setenv("LESSON_SPINE_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("LESSON_SPINE_LOG_LEVEL", "WARNING")
    monkeypatch.setattr("lesson_spine.core.logging.configure_logging", lambda **kwargs: None)
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))
    reset_settings()
    yield
    structlog.reset_defaults()
    reset_settings()
