"""Prometheus instruments and exporter for the ADB Trigger daemon.

Instruments live in a private registry and are bumped from the
``RuntimeState.record_*`` methods. The exporter is ``prometheus_client``'s
own HTTP server running in a daemon thread, so scrapes never touch the
event loop.
"""

from __future__ import annotations

import logging
import threading
from wsgiref.simple_server import WSGIServer

from prometheus_client import CollectorRegistry, Counter, Gauge, Info, start_http_server

from . import __version__

logger = logging.getLogger("adbtrigger.metrics")


class TriggerMetrics:
    """Counters mirrored from RuntimeState in Prometheus form."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.build = Info("adbtrigger", "Daemon version, listen address and tool path", registry=self.registry)
        self.connections_accepted = Counter(
            "adbtrigger_connections_accepted", "Client connections accepted", registry=self.registry
        )
        self.connections_active = Gauge(
            "adbtrigger_connections_active", "Client connections currently open", registry=self.registry
        )
        self.connections_closed = Counter(
            "adbtrigger_connections_closed",
            "Client connections ended, by outcome",
            ("outcome",),
            registry=self.registry,
        )
        self.accept_failures = Counter(
            "adbtrigger_accept_failures", "Failed accept attempts", registry=self.registry
        )
        self.lines = Counter(
            "adbtrigger_lines", "Complete lines received, by command kind", ("kind",), registry=self.registry
        )
        self.partial_lines = Counter(
            "adbtrigger_partial_lines_discarded", "Unterminated lines dropped at end of stream", registry=self.registry
        )
        self.invocations = Counter(
            "adbtrigger_invocations",
            "Device-bridge invocations, by verb and outcome",
            ("verb", "outcome"),
            registry=self.registry,
        )
        self.acks = Counter("adbtrigger_acks", "Pairing acknowledgements sent", registry=self.registry)

    def describe(self, *, listen_address: str, tool_path: str) -> None:
        self.build.info({"version": __version__, "listen_address": listen_address, "tool_path": tool_path})


class MetricsExporter:
    """Serve a TriggerMetrics registry over HTTP."""

    def __init__(self, metrics: TriggerMetrics, host: str, port: int) -> None:
        self._metrics = metrics
        self._host = host
        self._port = port
        self._server: WSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        if self._server is not None:
            return self._server.server_port
        return self._port

    def start(self) -> None:
        """Bind and start serving; an ``OSError`` here is fatal for the daemon."""
        if self._server is not None:
            return
        self._server, self._thread = start_http_server(self._port, addr=self._host, registry=self._metrics.registry)
        logger.info("Prometheus exporter listening on %s:%d", self._host, self.port)

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
        self._server = None
        self._thread = None
        logger.info("Prometheus exporter stopped")


__all__ = ["MetricsExporter", "TriggerMetrics"]
