"""Runtime state for the ADB Trigger daemon."""

from .context import RuntimeState, create_runtime_state

__all__ = ["RuntimeState", "create_runtime_state"]
