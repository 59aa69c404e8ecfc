"""Runtime counters for the ADB Trigger daemon.

The state only carries observability counters. Protocol handling keeps no
state across lines, so nothing here influences how a command is processed.
All mutation happens on the event loop thread.
"""

from __future__ import annotations

import collections
import time
from dataclasses import dataclass, field
from typing import Any, Final

from ..config.settings import RuntimeConfig
from ..metrics import TriggerMetrics

__all__: Final[tuple[str, ...]] = (
    "RuntimeState",
    "create_runtime_state",
)


@dataclass(slots=True)
class RuntimeState:
    listen_address: str = ""
    tool_path: str = ""
    started_unix: float = field(default_factory=time.time)

    connections_accepted: int = 0
    connections_active: int = 0
    connections_closed: int = 0
    connections_failed: int = 0
    accept_failures: int = 0

    lines_received: int = 0
    partial_lines_discarded: int = 0
    commands: collections.Counter[str] = field(default_factory=collections.Counter)
    invocations_ok: collections.Counter[str] = field(default_factory=collections.Counter)
    invocations_failed: collections.Counter[str] = field(default_factory=collections.Counter)
    acks_sent: int = 0

    # Prometheus mirror of the counters above, present only with --metrics.
    metrics: TriggerMetrics | None = None

    def record_connection_opened(self) -> None:
        self.connections_accepted += 1
        self.connections_active += 1
        if self.metrics is not None:
            self.metrics.connections_accepted.inc()
            self.metrics.connections_active.inc()

    def record_connection_closed(self, *, failed: bool) -> None:
        self.connections_active = max(0, self.connections_active - 1)
        if failed:
            self.connections_failed += 1
        else:
            self.connections_closed += 1
        if self.metrics is not None:
            self.metrics.connections_active.set(self.connections_active)
            self.metrics.connections_closed.labels(outcome="error" if failed else "ok").inc()

    def record_accept_failure(self) -> None:
        self.accept_failures += 1
        if self.metrics is not None:
            self.metrics.accept_failures.inc()

    def record_line(self, kind: str) -> None:
        self.lines_received += 1
        self.commands[kind] += 1
        if self.metrics is not None:
            self.metrics.lines.labels(kind=kind).inc()

    def record_partial_line(self) -> None:
        self.partial_lines_discarded += 1
        if self.metrics is not None:
            self.metrics.partial_lines.inc()

    def record_invocation(self, verb: str, *, ok: bool) -> None:
        if ok:
            self.invocations_ok[verb] += 1
        else:
            self.invocations_failed[verb] += 1
        if self.metrics is not None:
            self.metrics.invocations.labels(verb=verb, outcome="ok" if ok else "failed").inc()

    def record_ack(self) -> None:
        self.acks_sent += 1
        if self.metrics is not None:
            self.metrics.acks.inc()

    def build_metrics_snapshot(self) -> dict[str, Any]:
        return {
            "uptime_seconds": max(0.0, time.time() - self.started_unix),
            "listen_address": self.listen_address,
            "tool_path": self.tool_path,
            "connections": {
                "accepted": self.connections_accepted,
                "active": self.connections_active,
                "closed": self.connections_closed,
                "failed": self.connections_failed,
                "accept_failures": self.accept_failures,
            },
            "lines_received": self.lines_received,
            "partial_lines_discarded": self.partial_lines_discarded,
            "commands": dict(self.commands),
            "invocations": {
                "ok": dict(self.invocations_ok),
                "failed": dict(self.invocations_failed),
            },
            "acks_sent": self.acks_sent,
        }


def create_runtime_state(
    config: RuntimeConfig,
    *,
    tool_path: str = "",
    metrics: TriggerMetrics | None = None,
) -> RuntimeState:
    state = RuntimeState(metrics=metrics)
    state.listen_address = config.listen_address
    state.tool_path = tool_path
    return state
