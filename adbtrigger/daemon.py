#!/usr/bin/env python3
"""Async orchestrator for the ADB Trigger daemon.

The daemon listens for newline-delimited trigger commands on TCP and turns
them into ``adb connect``, ``adb disconnect`` and ``adb pair`` invocations,
so wireless debugging targets can be paired or attached from a phone or a
script on the same network.

Architecture:
    main() -> TriggerDaemon
        ├── MetricsExporter (optional, prometheus_client HTTP thread)
        └── TaskGroup
              └── acceptor (ConnectionAcceptor.serve)
                    └── one task per client (ConnectionHandler.run)

Startup is fail-fast: a missing device-bridge tool, an unbindable
listening port or an unbindable metrics port terminates the process with
exit status 1.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import NoReturn

import uvloop

from . import __version__
from .config.logging import configure_logging
from .config.settings import RuntimeConfig, load_runtime_config
from .metrics import MetricsExporter, TriggerMetrics
from .services.invoker import DeviceBridgeInvoker, ToolLocation, ToolNotFoundError, resolve_tool
from .state.context import RuntimeState, create_runtime_state
from .transport.tcp import ConnectionAcceptor, ListenerBindError

logger = logging.getLogger("adbtrigger")


class TriggerDaemon:
    """Main orchestrator for the trigger daemon services.

    Attributes:
        config: Runtime configuration from defaults and startup flags.
        tool: Device-bridge executable resolved at startup.
        state: Runtime counters shared by all components.
        invoker: Runs the device-bridge tool.
        acceptor: Owns the listening socket and all connection tasks.
        exporter: Prometheus exporter, only when metrics are enabled.
    """

    def __init__(self, config: RuntimeConfig, tool: ToolLocation):
        self.config = config
        self.tool = tool
        metrics = TriggerMetrics() if config.metrics_enabled else None
        self.state: RuntimeState = create_runtime_state(config, tool_path=tool.path, metrics=metrics)
        self.invoker = DeviceBridgeInvoker(tool, self.state)
        self.acceptor = ConnectionAcceptor(config, self.invoker, self.state)
        self.exporter: MetricsExporter | None = None
        if metrics is not None:
            self.exporter = MetricsExporter(metrics, config.metrics_host, config.metrics_port)

    def _start_exporter(self) -> None:
        if self.exporter is None or self.state.metrics is None:
            return
        self.state.metrics.describe(listen_address=self.state.listen_address, tool_path=self.tool.path)
        self.exporter.start()

    async def run(self) -> None:
        """Main async entry point."""
        # Bind before spawning anything so a busy port aborts startup.
        self.acceptor.bind()
        try:
            self._start_exporter()
        except OSError:
            await self.acceptor.close()
            raise

        try:
            async with asyncio.TaskGroup() as task_group:
                task_group.create_task(self.acceptor.serve(), name="acceptor")
        except* asyncio.CancelledError:
            logger.info("Main task cancelled; shutting down.")
        except* Exception as exc_group:
            for group_exc in exc_group.exceptions:
                logger.critical(
                    "Unhandled exception in main task group: %s",
                    group_exc,
                    exc_info=group_exc,
                )
            raise
        finally:
            await self.acceptor.close()
            if self.exporter is not None:
                self.exporter.stop()
            logger.info("ADB Trigger daemon stopped.", extra={"counters": self.state.build_metrics_snapshot()})


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adbtrigger",
        description="Trigger adb connect/disconnect/pair from line commands over TCP.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", dest="listen_host", default=None, help="Listen address (default 0.0.0.0)")
    parser.add_argument("--port", dest="listen_port", type=int, default=None, help="Listen port (default 15555)")
    parser.add_argument("--tool", dest="tool_name", default=None, help="Device-bridge executable name (default adb)")
    parser.add_argument("--tool-path", dest="tool_path", default=None, help="Explicit device-bridge executable path")
    parser.add_argument("--debug", dest="debug_logging", action="store_true", default=None, help="Enable debug logging")
    parser.add_argument(
        "--metrics", dest="metrics_enabled", action="store_true", default=None, help="Enable the Prometheus exporter"
    )
    parser.add_argument("--metrics-host", dest="metrics_host", default=None, help="Prometheus exporter address")
    parser.add_argument("--metrics-port", dest="metrics_port", type=int, default=None, help="Prometheus exporter port")
    return parser


def main(argv: Sequence[str] | None = None) -> NoReturn:
    args = build_arg_parser().parse_args(argv)
    try:
        config = load_runtime_config(vars(args))
    except ValueError as exc:
        sys.stderr.write(f"adbtrigger: {exc}\n")
        sys.exit(2)
    configure_logging(config)

    try:
        tool = resolve_tool(config.tool_name, config.tool_path)
    except ToolNotFoundError as exc:
        logger.critical("Device-bridge tool unavailable: %s", exc)
        sys.exit(1)

    logger.info("Starting ADB Trigger daemon. Listen: %s Tool: %s", config.listen_address, tool.path)

    try:
        daemon = TriggerDaemon(config, tool)
        asyncio.run(daemon.run(), loop_factory=uvloop.new_event_loop)
        sys.exit(0)
    except KeyboardInterrupt:
        logger.info("Daemon interrupted by user.")
        sys.exit(0)
    except ListenerBindError as exc:
        logger.critical("Startup aborted: %s", exc)
        sys.exit(1)
    except ExceptionGroup as exc_group:
        for group_exc in exc_group.exceptions:
            logger.critical("Fatal error in task group: %s", group_exc, exc_info=group_exc)
        sys.exit(1)
    except OSError as exc:
        logger.critical("System/OS error during daemon execution: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
