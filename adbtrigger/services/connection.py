"""Per-connection line protocol handler."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from transitions import Machine

from ..protocol.commands import (
    ACK_LINE,
    Command,
    Connect,
    Disconnect,
    Pair,
    Unrecognized,
    decode_line,
    parse_command,
)
from ..state.context import RuntimeState
from .invoker import DeviceBridgeInvoker, InvocationError

logger = logging.getLogger("adbtrigger.connection")


class ConnectionHandler:
    """Serve one accepted client until its stream ends.

    Lines are handled strictly one after another: the next line is not
    read until the previous command's invocation has completed. Invocation
    failures are logged and swallowed; stream errors propagate to the
    caller.

    Once the ``close`` trigger has fired, no further line is read and no
    further command reaches the tool.
    """

    if TYPE_CHECKING:
        # FSM generated methods and attributes for static analysis
        fsm_state: str
        line_received: Callable[[], None]
        dispatched: Callable[[], None]
        close: Callable[[], None]

    # FSM States
    STATE_READING = "reading"
    STATE_DISPATCHING = "dispatching"
    STATE_CLOSED = "closed"

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        peer: str,
        invoker: DeviceBridgeInvoker,
        state: RuntimeState | None = None,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.peer = peer
        self.invoker = invoker
        self.state = state

        self.machine = Machine(
            model=self,
            states=[
                self.STATE_READING,
                self.STATE_DISPATCHING,
                self.STATE_CLOSED,
            ],
            initial=self.STATE_READING,
            model_attribute="fsm_state",
            ignore_invalid_triggers=True,
        )

        self.machine.add_transition("line_received", self.STATE_READING, self.STATE_DISPATCHING)
        self.machine.add_transition("dispatched", self.STATE_DISPATCHING, self.STATE_READING)
        self.machine.add_transition("close", "*", self.STATE_CLOSED)

    async def run(self) -> None:
        try:
            while self.fsm_state != self.STATE_CLOSED:
                raw = await self.reader.readline()
                if not raw:
                    break
                if not raw.endswith(b"\n"):
                    # Stream ended in the middle of a line.
                    logger.debug("%s closed with partial line %r; discarded", self.peer, raw)
                    if self.state is not None:
                        self.state.record_partial_line()
                    break

                line = decode_line(raw)
                logger.info("%s received: %s", self.peer, line)
                self.line_received()
                try:
                    await self.dispatch(parse_command(line))
                finally:
                    self.dispatched()
        finally:
            self.close()
            await self._close_writer()

    async def dispatch(self, command: Command) -> None:
        if self.fsm_state == self.STATE_CLOSED:
            logger.debug("%s already closed; %s dropped", self.peer, type(command).__name__)
            return
        if self.state is not None:
            self.state.record_line(type(command).__struct_config__.tag)

        match command:
            case Connect(address=address):
                logger.info("Connect addr: %s", address)
                try:
                    await self.invoker.connect(address)
                except InvocationError as exc:
                    logger.warning("connect %s failed: %s", address, exc)

            case Disconnect(target=target):
                logger.info("Disconnect target: %s", target)
                try:
                    await self.invoker.disconnect(target)
                except InvocationError as exc:
                    logger.warning("disconnect %s failed: %s", target, exc)

            case Pair(address=address, code=code):
                logger.info("Pair addr: %s", address)
                try:
                    paired = await self.invoker.pair(address, code)
                except InvocationError as exc:
                    logger.warning("pair %s failed: %s", address, exc)
                    return
                if paired:
                    await self._send_ack()

            case Unrecognized():
                logger.info("%s unrecognized command ignored", self.peer)

    async def _send_ack(self) -> None:
        self.writer.write(ACK_LINE)
        await self.writer.drain()
        if self.state is not None:
            self.state.record_ack()

    async def _close_writer(self) -> None:
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (OSError, RuntimeError):
            logger.debug("Error closing connection to %s", self.peer, exc_info=True)


__all__ = ["ConnectionHandler"]
