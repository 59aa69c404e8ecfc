"""Settings loader for the ADB Trigger daemon.

The daemon has no configuration file and reads no environment variables.
Defaults cover the normal deployment; the only overrides come from the
command line flags parsed once at process startup.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

import msgspec

from ..const import (
    DEFAULT_ACCEPT_RETRY_DELAY,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_LINE_LIMIT,
    DEFAULT_LISTEN_BACKLOG,
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_METRICS_ENABLED,
    DEFAULT_METRICS_HOST,
    DEFAULT_METRICS_PORT,
    DEFAULT_TOOL_NAME,
)

logger = logging.getLogger(__name__)

_PORT_MAX = 65535


@dataclass(slots=True)
class RuntimeConfig:
    """Strongly typed configuration for the daemon."""

    listen_host: str = DEFAULT_LISTEN_HOST
    listen_port: int = DEFAULT_LISTEN_PORT
    listen_backlog: int = DEFAULT_LISTEN_BACKLOG
    tool_name: str = DEFAULT_TOOL_NAME
    tool_path: str | None = None
    line_limit: int = DEFAULT_LINE_LIMIT
    accept_retry_delay: float = DEFAULT_ACCEPT_RETRY_DELAY
    debug_logging: bool = DEFAULT_DEBUG_LOGGING
    metrics_enabled: bool = DEFAULT_METRICS_ENABLED
    metrics_host: str = DEFAULT_METRICS_HOST
    metrics_port: int = DEFAULT_METRICS_PORT

    def __post_init__(self) -> None:
        self.tool_name = self.tool_name.strip()
        if not self.tool_name:
            raise ValueError("tool_name must not be empty")
        if self.tool_path is not None and not self.tool_path.strip():
            self.tool_path = None
        self._require_port("listen_port", self.listen_port)
        self._require_port("metrics_port", self.metrics_port)
        self.listen_backlog = self._require_positive("listen_backlog", self.listen_backlog)
        self.line_limit = self._require_positive("line_limit", self.line_limit)
        if self.accept_retry_delay < 0:
            raise ValueError("accept_retry_delay must not be negative")
        if self.metrics_enabled and self.metrics_port and self.metrics_port == self.listen_port:
            logger.warning(
                "metrics_port equals listen_port (%d); the exporter will fail to bind.",
                self.listen_port,
            )

    @staticmethod
    def _require_positive(name: str, value: int) -> int:
        if value <= 0:
            raise ValueError(f"{name} must be a positive integer")
        return value

    @staticmethod
    def _require_port(name: str, value: int) -> None:
        if not 0 <= value <= _PORT_MAX:
            raise ValueError(f"{name} must be between 0 and {_PORT_MAX}")

    @property
    def listen_address(self) -> str:
        return f"{self.listen_host}:{self.listen_port}"


def get_default_config() -> dict[str, Any]:
    """Provide default daemon configuration values."""
    return asdict(RuntimeConfig())


def load_runtime_config(overrides: Mapping[str, Any] | None = None) -> RuntimeConfig:
    """Build a validated RuntimeConfig from defaults plus startup overrides.

    Keys mapped to ``None`` are treated as "not provided" so that argparse
    namespaces can be passed through without filtering.
    """
    raw = get_default_config()
    if overrides:
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in raw:
                raise ValueError(f"Unknown configuration key: {key}")
            raw[key] = value

    try:
        return msgspec.convert(raw, RuntimeConfig, strict=False)
    except msgspec.ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


__all__ = ["RuntimeConfig", "get_default_config", "load_runtime_config"]
