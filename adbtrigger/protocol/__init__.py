"""Line protocol for the ADB Trigger daemon."""

from .commands import (
    ACK_LINE,
    COMMAND_MATCHERS,
    Command,
    Connect,
    Disconnect,
    Pair,
    Unrecognized,
    decode_line,
    parse_command,
)

__all__ = [
    "ACK_LINE",
    "COMMAND_MATCHERS",
    "Command",
    "Connect",
    "Disconnect",
    "Pair",
    "Unrecognized",
    "decode_line",
    "parse_command",
]
