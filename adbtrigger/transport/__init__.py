"""Transports for the ADB Trigger daemon."""

from .tcp import ConnectionAcceptor, ListenerBindError, format_peer

__all__ = ["ConnectionAcceptor", "ListenerBindError", "format_peer"]
