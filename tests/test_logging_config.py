"""Tests for the logging configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

from adbtrigger.config import logging as log_mod
from adbtrigger.config.settings import RuntimeConfig


def test_formatter_trims_prefix_and_serialises_extras() -> None:
    record = logging.LogRecord(
        name="adbtrigger.connection",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="%s received: %s",
        args=("10.0.0.2:40000", "c-1.2.3.4:5"),
        exc_info=None,
    )
    record.counters = {"connections": {"accepted": 2}, "commands": {"pair": 1}}  # type: ignore[attr-defined]
    record.custom_obj = object()  # type: ignore[attr-defined]

    payload = json.loads(log_mod.StructuredLogFormatter().format(record))

    assert payload["logger"] == "connection"
    assert payload["level"] == "INFO"
    assert payload["message"] == "10.0.0.2:40000 received: c-1.2.3.4:5"
    assert payload["ts"].endswith("Z")
    assert payload["extra"]["counters"] == {"connections": {"accepted": 2}, "commands": {"pair": 1}}
    assert payload["extra"]["custom_obj"] == str(record.custom_obj)
    assert "taskName" not in payload["extra"]


def test_formatter_includes_exception() -> None:
    try:
        raise ConnectionResetError("gone")
    except ConnectionResetError:
        import sys

        exc_info = sys.exc_info()
    record = logging.LogRecord("adbtrigger", logging.WARNING, __file__, 1, "failed", (), exc_info)
    payload = json.loads(log_mod.StructuredLogFormatter().format(record))
    assert "ConnectionResetError: gone" in payload["exception"]
    assert "extra" not in payload


def test_configure_logging_uses_stream_without_syslog(tmp_path: Path) -> None:
    with (
        patch.object(log_mod, "SYSLOG_SOCKET", tmp_path / "missing"),
        patch.object(log_mod, "SYSLOG_SOCKET_FALLBACK", tmp_path / "missing-too"),
    ):
        log_mod.configure_logging(RuntimeConfig(debug_logging=True))

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(
        type(handler) is logging.StreamHandler and isinstance(handler.formatter, log_mod.StructuredLogFormatter)
        for handler in root.handlers
    )


def test_configure_logging_prefers_syslog(tmp_path: Path) -> None:
    fake_socket = tmp_path / "log"
    fake_socket.touch()

    with patch.object(log_mod, "SYSLOG_SOCKET", fake_socket):
        with patch.object(log_mod, "dictConfig") as mock_dict_config:
            log_mod.configure_logging(RuntimeConfig())

    config_arg = mock_dict_config.call_args[0][0]
    assert config_arg["root"]["level"] == "INFO"
    assert config_arg["handlers"]["adbtrigger"]["()"] is log_mod._build_handler


def test_build_handler_selects_syslog(tmp_path: Path) -> None:
    fake_socket = tmp_path / "log"
    fake_socket.touch()
    with patch.object(log_mod, "SYSLOG_SOCKET", fake_socket), patch.object(log_mod, "SysLogHandler") as syslog:
        handler = log_mod._build_handler()
    assert handler is syslog.return_value
    assert syslog.call_args.kwargs["address"] == str(fake_socket)
