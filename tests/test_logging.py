"""Tests for correlation ids and log formatting."""

import json
import logging

import pytest

from gridrep.core.logging import (
    CorrelationIdFilter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_set_correlation_id_generates_when_missing() -> None:
    generated = set_correlation_id()
    assert len(generated) == 32
    assert get_correlation_id() == generated
    assert set_correlation_id("given") == "given"


def test_filter_stamps_records() -> None:
    set_correlation_id("abc")
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)

    assert CorrelationIdFilter().filter(record) is True
    assert record.correlation_id == "abc"


def test_json_output_includes_correlation_id(capsys) -> None:
    configure_logging("DEBUG", json_format=True)
    set_correlation_id("req-1")
    capsys.readouterr()

    logging.getLogger("gridrep.test").info("hello", extra={"session_id": "555"})

    line = capsys.readouterr().out.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "hello"
    assert payload["correlation_id"] == "req-1"
    assert payload["session_id"] == "555"
    assert payload["level"] == "INFO"
