"""Device-bridge tool invocation for the ADB Trigger daemon."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from collections.abc import Sequence

import msgspec

from ..state.context import RuntimeState

logger = logging.getLogger("adbtrigger.invoker")


class ToolNotFoundError(RuntimeError):
    """Raised when the device-bridge executable cannot be located."""


class InvocationError(Exception):
    """Base class for failed device-bridge invocations."""

    def __init__(self, message: str, argv: Sequence[str]) -> None:
        super().__init__(message)
        self.message = message
        self.argv = tuple(argv)


class ToolSpawnError(InvocationError):
    """The tool process could not be started at all."""


class ToolExitError(InvocationError):
    """The tool ran and reported failure.

    ``exit_code`` is ``None`` when the process was terminated by a signal,
    in which case ``signal_number`` holds the signal.
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        exit_code: int | None,
        signal_number: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        if exit_code is None:
            message = f"terminated by signal {signal_number if signal_number is not None else 'unknown'}"
        else:
            message = f"exit: {exit_code}"
        super().__init__(message, argv)
        self.exit_code = exit_code
        self.signal_number = signal_number
        self.stdout = stdout
        self.stderr = stderr


class ToolLocation(msgspec.Struct, frozen=True):
    """Resolved device-bridge executable, fixed for the process lifetime."""

    name: str
    path: str


class InvocationResult(msgspec.Struct, frozen=True):
    argv: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0


def resolve_tool(name: str, explicit_path: str | None = None) -> ToolLocation:
    """Locate the device-bridge tool once at startup.

    An explicit path must point to an executable file; otherwise *name* is
    looked up on the executable search path.
    """
    if explicit_path:
        if os.path.isfile(explicit_path) and os.access(explicit_path, os.X_OK):
            return ToolLocation(name=name, path=os.path.abspath(explicit_path))
        raise ToolNotFoundError(f"'{explicit_path}' is not an executable file")

    path = shutil.which(name)
    if path is None:
        raise ToolNotFoundError(f"'{name}' not found on PATH")
    return ToolLocation(name=name, path=path)


class DeviceBridgeInvoker:
    """Run the device-bridge tool with fixed argument vectors.

    Every call spawns a fresh process; calls are independent and may run
    concurrently. Failures surface as :class:`InvocationError`.
    """

    def __init__(self, tool: ToolLocation, state: RuntimeState | None = None) -> None:
        self.tool = tool
        self.state = state

    async def invoke(self, args: Sequence[str]) -> InvocationResult:
        argv = tuple(args)
        verb = argv[0] if argv else ""
        try:
            proc = await asyncio.create_subprocess_exec(
                self.tool.path,
                *argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            self._record(verb, ok=False)
            raise ToolSpawnError(f"failed to start {self.tool.path}: {exc}", argv) from exc

        stdout_bytes, stderr_bytes = await proc.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        logger.info("%s: %s", self.tool.name, stdout)
        if stderr:
            logger.info("%s_err: %s", self.tool.name, stderr)

        returncode = proc.returncode
        if returncode == 0:
            self._record(verb, ok=True)
            return InvocationResult(argv=argv, exit_code=returncode, stdout=stdout, stderr=stderr)

        self._record(verb, ok=False)
        if returncode is None or returncode < 0:
            raise ToolExitError(
                argv,
                exit_code=None,
                signal_number=-returncode if returncode is not None else None,
                stdout=stdout,
                stderr=stderr,
            )
        raise ToolExitError(argv, exit_code=returncode, stdout=stdout, stderr=stderr)

    async def connect(self, address: str) -> None:
        await self.invoke(("connect", address))

    async def disconnect(self, target: str) -> None:
        await self.invoke(("disconnect", target))

    async def pair(self, address: str, code: str) -> bool:
        result = await self.invoke(("pair", address, code))
        return result.success

    def _record(self, verb: str, *, ok: bool) -> None:
        if self.state is not None:
            self.state.record_invocation(verb, ok=ok)


__all__ = [
    "DeviceBridgeInvoker",
    "InvocationError",
    "InvocationResult",
    "ToolExitError",
    "ToolLocation",
    "ToolNotFoundError",
    "ToolSpawnError",
    "resolve_tool",
]
