from __future__ import annotations

import json
import logging
import sys

from vehnt.domain.errors import PositionAlreadyClosedError
from vehnt.logging_context import get_logging_context, with_logging_context, with_position_context
from vehnt.logging_utils import JsonFormatter, setup_logging


def _record(msg: str, **kwargs) -> logging.LogRecord:
    return logging.LogRecord(
        name="vehnt.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=kwargs.get("exc_info"),
    )


def test_json_formatter_includes_exception_details() -> None:
    formatter = JsonFormatter()

    try:
        raise ValueError("boom")
    except ValueError:
        rendered = formatter.format(_record("purge failed", exc_info=sys.exc_info()))

    payload = json.loads(rendered)
    assert payload["message"] == "purge failed"
    assert payload["error_type"] == "ValueError"
    assert payload["error_message"] == "boom"
    assert "ValueError: boom" in payload["traceback"]


def test_json_formatter_reports_staking_error_code() -> None:
    try:
        raise PositionAlreadyClosedError("position already closed", position_id="pos-1")
    except PositionAlreadyClosedError:
        record = _record("command_failed", exc_info=sys.exc_info())

    with with_logging_context(command="close-position"):
        payload = json.loads(JsonFormatter().format(record))

    assert payload["error_code"] == "POSITION_ALREADY_CLOSED"
    assert payload["command"] == "close-position"


def test_json_formatter_merges_extra_and_context() -> None:
    record = _record("position_finalized")
    record.extra = {"restored_vehnt": 500}

    with with_position_context("pos-1", pool_id="pool-1"):
        payload = json.loads(JsonFormatter().format(record))

    assert payload["restored_vehnt"] == 500
    assert payload["position_id"] == "pos-1"
    assert payload["pool_id"] == "pool-1"
    assert "trigger_key" not in payload
    assert "command" not in payload


def test_logging_context_is_restored() -> None:
    with with_logging_context(trigger_key="trg:1", unknown="ignored"):
        assert get_logging_context() == {"trigger_key": "trg:1"}
    assert get_logging_context() == {}


def test_setup_logging_uses_log_level_env(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    setup_logging()

    assert logging.getLogger().level == logging.DEBUG


def test_setup_logging_defaults_http_loggers_for_info() -> None:
    setup_logging("INFO")

    assert logging.getLogger("httpx").level == logging.INFO
    assert logging.getLogger("httpcore").level == logging.WARNING


def test_setup_logging_respects_http_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("HTTPX_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("HTTPCORE_LOG_LEVEL", "CRITICAL")

    setup_logging("INFO")

    assert logging.getLogger("httpx").level == logging.ERROR
    assert logging.getLogger("httpcore").level == logging.CRITICAL
