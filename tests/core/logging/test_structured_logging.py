"""Tests for structured logging with trace propagation."""

from __future__ import annotations

import io
import json

import pytest
from pydantic import ValidationError

from pricepulse.core.logging import LogConfig, configure_logging, log_context, logger


def _read_records(stream: io.StringIO) -> list[dict[str, object]]:
    stream.seek(0)
    lines = [line for line in stream.getvalue().splitlines() if line.strip()]
    return [json.loads(line) for line in lines]


def test_structured_log_contains_trace_and_context() -> None:
    buffer = io.StringIO()
    configure_logging("INFO", console_stream=buffer)

    with log_context(trace_id="trace-123", source="binance", error_code="PROVIDER_UNAVAILABLE", request_id="req-42"):
        logger.info("fetch failed", symbols=3)

    [record] = _read_records(buffer)
    assert record["trace_id"] == "trace-123"
    assert record["source"] == "binance"
    assert record["error_code"] == "PROVIDER_UNAVAILABLE"
    assert record["context"]["request_id"] == "req-42"
    assert record["context"]["symbols"] == 3
    assert record["level"] == "INFO"


def test_bound_source_wins_over_context() -> None:
    buffer = io.StringIO()
    configure_logging("INFO", console_stream=buffer)

    with log_context(source="web"):
        logger.bind(source="binance").info("bound")
        logger.info("inherited")

    bound, inherited = _read_records(buffer)
    assert bound["source"] == "binance"
    assert inherited["source"] == "web"


def test_trace_id_propagates_within_context() -> None:
    buffer = io.StringIO()
    configure_logging("INFO", console_stream=buffer)

    with log_context() as trace_id:
        logger.info("first event")
        logger.info("second event")

    logger.info("outside context")

    records = _read_records(buffer)
    assert len(records) == 3
    assert records[0]["trace_id"] == records[1]["trace_id"] == trace_id
    assert records[2]["trace_id"] != trace_id


def test_trace_id_generated_when_missing() -> None:
    buffer = io.StringIO()
    configure_logging("INFO", console_stream=buffer)

    logger.info("single message")

    [record] = _read_records(buffer)
    trace_id = record["trace_id"]
    assert isinstance(trace_id, str)
    assert len(trace_id) == 32
    assert all(character in "0123456789abcdef" for character in trace_id)


def test_level_filters_records() -> None:
    buffer = io.StringIO()
    configure_logging("WARNING", console_stream=buffer)

    logger.info("hidden")
    logger.warning("shown")

    assert [record["message"] for record in _read_records(buffer)] == ["shown"]


def test_exception_is_serialised() -> None:
    buffer = io.StringIO()
    configure_logging("INFO", console_stream=buffer)

    try:
        raise ValueError("bad payload")
    except ValueError:
        logger.exception("observer failed")

    [record] = _read_records(buffer)
    assert record["exception"] == "ValueError: bad payload"


def test_file_sink_writes_json_lines(tmp_path) -> None:
    path = tmp_path / "logs" / "pricepulse.log"
    configure_logging("INFO", console_output=False, file_output=True, file_path=str(path))

    with log_context(trace_id="file-trace"):
        logger.info("persisted")

    [line] = path.read_text(encoding="utf-8").splitlines()
    assert json.loads(line)["trace_id"] == "file-trace"


def test_level_is_normalized() -> None:
    assert LogConfig(level=" debug ").level == "DEBUG"


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(ValidationError, match="log level"):
        LogConfig(level="verbose")


def test_file_output_requires_path() -> None:
    with pytest.raises(ValidationError, match="file_path"):
        LogConfig(file_output=True)
