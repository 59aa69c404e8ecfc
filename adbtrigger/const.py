"""Constants shared across the ADB Trigger daemon."""

from __future__ import annotations

from typing import Final

DEFAULT_LISTEN_HOST: Final[str] = "0.0.0.0"
DEFAULT_LISTEN_PORT: Final[int] = 15555
DEFAULT_LISTEN_BACKLOG: Final[int] = 100
DEFAULT_TOOL_NAME: Final[str] = "adb"
DEFAULT_LINE_LIMIT: Final[int] = 64 * 1024
DEFAULT_ACCEPT_RETRY_DELAY: Final[float] = 0.0
DEFAULT_DEBUG_LOGGING: Final[bool] = False

DEFAULT_METRICS_ENABLED: Final[bool] = False
DEFAULT_METRICS_HOST: Final[str] = "127.0.0.1"
DEFAULT_METRICS_PORT: Final[int] = 9130

