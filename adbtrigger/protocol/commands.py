"""Command grammar for the newline-delimited trigger protocol.

Wire format (one command per line, UTF-8):

    c-<ipv4>:<port>              connect to a wireless debugging target
    d-<target>                   disconnect an address or device serial
    p-<ipv4>:<port>-<6 digits>   pair using the pairing code shown on the device

Anything else is ignored. Only a successful pair produces a response,
the literal line ``ok``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Final

import msgspec

ACK_LINE: Final[bytes] = b"ok\n"

# Syntactic only: octet and port ranges are left to the device-bridge tool.
_ADDRESS = r"\d+\.\d+\.\d+\.\d+:\d+"


class Connect(msgspec.Struct, frozen=True, tag_field="kind", tag="connect"):
    address: str


class Disconnect(msgspec.Struct, frozen=True, tag_field="kind", tag="disconnect"):
    target: str


class Pair(msgspec.Struct, frozen=True, tag_field="kind", tag="pair"):
    address: str
    code: str


class Unrecognized(msgspec.Struct, frozen=True, tag_field="kind", tag="unrecognized"):
    """Line that matched no command; it triggers no action."""


Command = Connect | Disconnect | Pair | Unrecognized

CommandBuilder = Callable[[re.Match[str]], Command]

UNRECOGNIZED: Final[Unrecognized] = Unrecognized()

# Evaluated in order; the first pattern that matches wins.
COMMAND_MATCHERS: Final[tuple[tuple[re.Pattern[str], CommandBuilder], ...]] = (
    (
        re.compile(rf"c-({_ADDRESS})", re.ASCII),
        lambda match: Connect(address=match.group(1)),
    ),
    (
        re.compile(r"d-(.+)", re.DOTALL),
        lambda match: Disconnect(target=match.group(1)),
    ),
    (
        re.compile(rf"p-({_ADDRESS})-(\d{{6}})", re.ASCII),
        lambda match: Pair(address=match.group(1), code=match.group(2)),
    ),
)


def decode_line(raw: bytes) -> str:
    """Strip the line terminator and decode, replacing invalid UTF-8."""
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


def parse_command(line: str) -> Command:
    """Classify a single protocol line (without its terminator)."""
    for pattern, build in COMMAND_MATCHERS:
        match = pattern.fullmatch(line)
        if match is not None:
            return build(match)
    return UNRECOGNIZED
