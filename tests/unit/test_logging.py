"""Unit tests for logging configuration."""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO
from pathlib import Path
from typing import Any

import pytest
import structlog

from reviewflow.config import LoggingConfig
from reviewflow.logging import (
    add_correlation_id,
    bind_mr_context,
    clear_mr_context,
    get_logger,
    set_correlation_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logging() -> None:
    """Reset logging configuration before each test."""
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    set_correlation_id(None)


@pytest.fixture
def capture_stream() -> StringIO:
    return StringIO()


@pytest.fixture
def json_config() -> LoggingConfig:
    return LoggingConfig(level="INFO", format="json", file=None)


def _capture(config: LoggingConfig, stream: StringIO) -> None:
    setup_logging(config)
    logging.getLogger().handlers[0].stream = stream


def _last_entry(stream: StringIO) -> dict[str, Any]:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_json_output_format(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    """JSON format produces one JSON object per event."""
    _capture(json_config, capture_stream)

    get_logger("reviewflow.test").info("reviewers_assigned", iid=42, reviewers=["alice"])

    entry = _last_entry(capture_stream)
    assert entry["event"] == "reviewers_assigned"
    assert entry["iid"] == 42
    assert entry["reviewers"] == ["alice"]
    assert entry["level"] == "info"
    assert entry["logger"] == "reviewflow.test"
    assert "timestamp" in entry


def test_console_output_format(capture_stream: StringIO) -> None:
    """Console format is human readable, not JSON."""
    _capture(LoggingConfig(level="DEBUG", format="console"), capture_stream)

    get_logger("reviewflow.test").debug("pass_started", job="assignment")

    output = capture_stream.getvalue()
    assert "pass_started" in output
    assert "assignment" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())


def test_level_filtering(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    _capture(json_config, capture_stream)
    logger = get_logger("reviewflow.test")

    logger.debug("hidden")
    assert capture_stream.getvalue() == ""

    logger.warning("shown")
    assert "shown" in capture_stream.getvalue()


def test_correlation_id(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    _capture(json_config, capture_stream)
    logger = get_logger("reviewflow.test")

    set_correlation_id("pass-123")
    logger.info("with_correlation")
    assert _last_entry(capture_stream)["correlation_id"] == "pass-123"

    set_correlation_id(None)
    logger.info("without_correlation")
    assert "correlation_id" not in _last_entry(capture_stream)


def test_correlation_id_processor() -> None:
    event_dict: dict[str, Any] = {"event": "test"}
    assert "correlation_id" not in add_correlation_id(None, "", event_dict.copy())

    set_correlation_id("abc")
    assert add_correlation_id(None, "", event_dict.copy())["correlation_id"] == "abc"


def test_mr_context_binding(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    _capture(json_config, capture_stream)
    logger = get_logger("reviewflow.test")

    bind_mr_context("mr-1", repository="backend")
    logger.info("inside_mr")
    entry = _last_entry(capture_stream)
    assert entry["mr_id"] == "mr-1"
    assert entry["repository"] == "backend"

    clear_mr_context()
    logger.info("outside_mr")
    entry = _last_entry(capture_stream)
    assert "mr_id" not in entry
    assert "repository" not in entry


def test_file_rotation_handler(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "reviewflow.log"
    setup_logging(
        LoggingConfig(level="INFO", format="json", file=log_file, rotation_size_mb=5, retention_count=2)
    )

    handler = logging.getLogger().handlers[0]
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 5 * 1024 * 1024
    assert handler.backupCount == 2

    get_logger("reviewflow.test").info("file_write", data="ok")
    handler.flush()

    entry = json.loads(log_file.read_text().strip())
    assert entry["event"] == "file_write"
    assert entry["data"] == "ok"


def test_exception_formatting(json_config: LoggingConfig, capture_stream: StringIO) -> None:
    _capture(json_config, capture_stream)

    try:
        raise RuntimeError("gitlab down")
    except RuntimeError:
        get_logger("reviewflow.test").exception("assignment_failed")

    lines = capture_stream.getvalue().strip().splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["level"] == "error"
    assert "RuntimeError: gitlab down" in entry["exception"]


def test_stdlib_records_share_the_json_format(
    json_config: LoggingConfig, capture_stream: StringIO
) -> None:
    _capture(json_config, capture_stream)
    set_correlation_id("pass-7")

    logging.getLogger("sqlalchemy.engine").warning("pool exhausted")

    entry = _last_entry(capture_stream)
    assert entry["event"] == "pool exhausted"
    assert entry["level"] == "warning"
    assert entry["correlation_id"] == "pass-7"
