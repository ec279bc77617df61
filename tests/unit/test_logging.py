"""Tests for logging configuration."""

import logging

import pytest
import structlog

from roleplay.core.config import settings
from roleplay.core.exceptions import ConfigurationError
from roleplay.core.logging import (
    action_context,
    bind_context,
    clear_context,
    configure_logging,
    drop_unset_context,
    get_logger,
    resolve_level,
)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    clear_context()
    configure_logging(log_to_file=False)


class TestLoggingConfiguration:
    """Tests for logging setup."""

    def test_configure_logging_sets_up_structlog(self):
        configure_logging(log_to_file=False)
        logger = structlog.get_logger("test")
        assert logger is not None

    def test_get_logger_returns_bound_logger(self):
        logger = get_logger("test_module")
        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")
        assert hasattr(logger, "error")

    def test_level_applied_to_root_logger(self):
        configure_logging(log_to_file=False, level="warning")

        assert logging.getLogger().level == logging.WARNING

    def test_reconfigure_replaces_handlers(self):
        configure_logging(log_to_file=False)
        configure_logging(log_to_file=False)

        assert len(logging.getLogger().handlers) == 1

    def test_unknown_level_rejected(self):
        with pytest.raises(ConfigurationError, match="verbose"):
            resolve_level("verbose")


def test_file_logging_prunes_old_files(tmp_path, monkeypatch):
    """Only the most recent log files are kept."""
    logs_dir = tmp_path / "logs"
    logs_dir.mkdir()
    for i in range(5):
        (logs_dir / f"training_2026010{i}_000000.log").write_text("old")
    (logs_dir / "unrelated.log").write_text("keep me")
    monkeypatch.setattr(settings, "logs_dir", logs_dir)

    configure_logging(log_to_file=True, keep_files=2)

    assert len(list(logs_dir.glob("training_*.log"))) == 2
    assert (logs_dir / "unrelated.log").exists()


def test_request_context_bound_and_cleared():
    bind_context(request_id="req-1")
    assert structlog.contextvars.get_contextvars()["request_id"] == "req-1"

    clear_context()
    assert "request_id" not in structlog.contextvars.get_contextvars()


def test_action_context_restores_previous_values():
    bind_context(request_id="req-1")

    with action_context("select a persona", scenario_id="deadline_negotiation"):
        bound = structlog.contextvars.get_contextvars()
        assert bound["workflow_action"] == "select a persona"
        assert bound["scenario_id"] == "deadline_negotiation"
        assert bound["request_id"] == "req-1"

    after = structlog.contextvars.get_contextvars()
    assert "workflow_action" not in after
    assert "scenario_id" not in after
    assert after["request_id"] == "req-1"


def test_unset_context_values_dropped():
    event = {"event": "conversation_started", "scenario_id": None, "epoch": 0}

    assert drop_unset_context(None, "info", event) == {
        "event": "conversation_started",
        "epoch": 0,
    }
