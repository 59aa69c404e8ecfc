"""Service layer for the ADB Trigger daemon."""

from .connection import ConnectionHandler
from .invoker import (
    DeviceBridgeInvoker,
    InvocationError,
    InvocationResult,
    ToolExitError,
    ToolLocation,
    ToolNotFoundError,
    ToolSpawnError,
    resolve_tool,
)

__all__ = [
    "ConnectionHandler",
    "DeviceBridgeInvoker",
    "InvocationError",
    "InvocationResult",
    "ToolExitError",
    "ToolLocation",
    "ToolNotFoundError",
    "ToolSpawnError",
    "resolve_tool",
]
