"""TCP listener and accept loop for the trigger protocol."""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Callable
from typing import Any

import tenacity

from ..config.settings import RuntimeConfig
from ..services.connection import ConnectionHandler
from ..services.invoker import DeviceBridgeInvoker
from ..state.context import RuntimeState

logger = logging.getLogger("adbtrigger.acceptor")

HandlerFactory = Callable[
    [asyncio.StreamReader, asyncio.StreamWriter, str, DeviceBridgeInvoker, RuntimeState | None],
    ConnectionHandler,
]


class ListenerBindError(RuntimeError):
    """Raised when the listening socket cannot be bound."""


def format_peer(address: Any) -> str:
    if isinstance(address, tuple) and len(address) >= 2:
        host, port = address[0], address[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(address)


class ConnectionAcceptor:
    """Accept clients and run one handler task per connection.

    The acceptor owns every connection task it starts. There is no limit on
    concurrent connections; ``live_connections`` exposes the current set.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        invoker: DeviceBridgeInvoker,
        state: RuntimeState | None = None,
        *,
        handler_factory: HandlerFactory = ConnectionHandler,
    ) -> None:
        self.config = config
        self.invoker = invoker
        self.state = state
        self.handler_factory = handler_factory
        self._sock: socket.socket | None = None
        self._connections: dict[str, asyncio.Task[None]] = {}

    @property
    def bound_address(self) -> tuple[str, int] | None:
        if self._sock is None:
            return None
        host, port = self._sock.getsockname()[:2]
        return host, port

    @property
    def live_connections(self) -> dict[str, asyncio.Task[None]]:
        return dict(self._connections)

    def bind(self) -> socket.socket:
        """Bind the listening socket once; failure is fatal for the daemon."""
        if self._sock is not None:
            return self._sock
        host, port = self.config.listen_host, self.config.listen_port
        try:
            infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
            family, socktype, proto, _, sockaddr = infos[0]
            sock = socket.socket(family, socktype, proto)
        except OSError as exc:
            raise ListenerBindError(f"cannot resolve listen address {host}:{port}: {exc}") from exc
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(sockaddr)
            sock.listen(self.config.listen_backlog)
            sock.setblocking(False)
        except OSError as exc:
            sock.close()
            raise ListenerBindError(f"cannot bind {host}:{port}: {exc}") from exc

        self._sock = sock
        if self.state is not None:
            self.state.listen_address = format_peer(sock.getsockname())
        logger.info("Listening on %s", format_peer(sock.getsockname()))
        return sock

    async def serve(self) -> None:
        """Accept connections forever."""
        sock = self.bind()
        while True:
            client, address = await self._accept(sock)
            await self._start_connection(client, format_peer(address))

    async def close(self) -> None:
        tasks = list(self._connections.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._connections.clear()
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.info("Listener closed")

    async def _accept(self, sock: socket.socket) -> tuple[socket.socket, Any]:
        loop = asyncio.get_running_loop()
        retryer = tenacity.AsyncRetrying(
            wait=tenacity.wait_fixed(self.config.accept_retry_delay),
            retry=tenacity.retry_if_exception_type(OSError),
            stop=tenacity.stop_never,
            before_sleep=self._log_accept_failure,
            reraise=True,
        )
        async for attempt in retryer:
            with attempt:
                return await loop.sock_accept(sock)
        raise AssertionError("unreachable")  # pragma: no cover

    def _log_accept_failure(self, retry_state: tenacity.RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if self.state is not None:
            self.state.record_accept_failure()
        logger.warning("Server accept failed: %s", exc)

    async def _start_connection(self, client: socket.socket, peer: str) -> None:
        try:
            reader, writer = await asyncio.open_connection(sock=client, limit=self.config.line_limit)
        except OSError as exc:
            client.close()
            if self.state is not None:
                self.state.record_accept_failure()
            logger.warning("Server accept failed for %s: %s", peer, exc)
            return

        logger.info("Accept client from %s", peer)
        if self.state is not None:
            self.state.record_connection_opened()
        handler = self.handler_factory(reader, writer, peer, self.invoker, self.state)
        task = asyncio.create_task(self._run_connection(handler), name=f"connection-{peer}")
        self._connections[peer] = task
        task.add_done_callback(lambda done, key=peer: self._forget(key, done))

    async def _run_connection(self, handler: ConnectionHandler) -> None:
        failed = False
        try:
            await handler.run()
        except asyncio.CancelledError:
            logger.info("Client %s cancelled", handler.peer)
            raise
        except Exception as exc:
            failed = True
            logger.warning("Client %s quitted with error %r", handler.peer, exc)
        else:
            logger.info("Client %s quitted", handler.peer)
        finally:
            if self.state is not None:
                self.state.record_connection_closed(failed=failed)

    def _forget(self, peer: str, task: asyncio.Task[None]) -> None:
        if self._connections.get(peer) is task:
            del self._connections[peer]


__all__ = ["ConnectionAcceptor", "ListenerBindError", "format_peer"]
