"""
Async process runner for supervised FFmpeg streams.

This module wraps one invocation of an external process: it spawns the
process, captures its combined output into a bounded buffer, and watches it
in a background task until it exits.
"""

import asyncio
from typing import Optional

from ..utils import SpawnError, StreamRuntimeError, get_logger, truncate_head

logger = get_logger(__name__)


class OutputTail:
    """Keeps the last ``limit`` bytes written to it."""

    def __init__(self, limit: int = 4096):
        self.limit = limit
        self.total = 0
        self._buffer = bytearray()

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)
        self.total += len(data)
        overflow = len(self._buffer) - self.limit
        if overflow > 0:
            del self._buffer[:overflow]

    def text(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")

    def __len__(self) -> int:
        return len(self._buffer)


class ProcessRunner:
    """
    Handle to one spawned instance of an external process.

    A runner is single use: once it has been closed or its process has
    exited, a new runner must be created to run the command again.

    - ``start()`` spawns the process and returns without waiting for exit
    - ``is_running`` turns False once the watcher task has reaped the process
    - ``last_error()`` reports the captured diagnostic after exit
    - ``close()`` terminates the process and waits until it is reaped
    """

    READ_CHUNK = 4096

    def __init__(
        self,
        command: list[str],
        capture_limit: int = 4096,
        error_tail: int = 128,
        kill_after: Optional[float] = 10.0,
    ):
        """
        Initialize process runner.

        Args:
            command: Executable followed by its arguments
            capture_limit: Bytes of combined stdout/stderr kept in memory
            error_tail: Characters of captured output reported as error detail
            kill_after: Seconds to wait after SIGTERM before SIGKILL (None = wait forever)
        """
        self.command = command
        self.error_tail = error_tail
        self.kill_after = kill_after
        self._output = OutputTail(capture_limit)
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watcher: Optional[asyncio.Task[Optional[StreamRuntimeError]]] = None
        self._spawned = asyncio.Event()
        self._starting = False
        self._cancelled = False
        self._done = False

    async def start(self) -> None:
        """
        Spawn the process and its watcher task.

        Raises:
            SpawnError: If the executable cannot be launched, or the runner
                was already started or closed
        """
        if self._cancelled:
            raise SpawnError("runner closed before start", command=self.command)
        if self._starting:
            raise SpawnError("runner already started", command=self.command)
        self._starting = True

        logger.debug(f"Full command: {' '.join(self.command)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            raise SpawnError(f"failed to start {self.command[0]}: {e}", command=self.command) from e
        finally:
            if self._process is None:
                self._done = True
            else:
                self._watcher = asyncio.create_task(self._watch())
            self._spawned.set()

        logger.info(f"Started {self.command[0]} (pid {self._process.pid})")

    async def _watch(self) -> Optional[StreamRuntimeError]:
        """
        Drain output and wait for the process to exit.

        Returns:
            Exit error for a non-zero exit code, else None
        """
        assert self._process is not None

        try:
            await asyncio.gather(self._drain(), self._process.wait())
        finally:
            self._done = True

        returncode = self._process.returncode
        logger.debug(f"Process {self._process.pid} exited with code {returncode}")

        if returncode:
            return StreamRuntimeError(self._tail() or f"exit status {returncode}", returncode)
        return None

    async def _drain(self) -> None:
        """Copy process output into the bounded capture buffer."""
        if not self._process or not self._process.stdout:
            return

        while True:
            chunk = await self._process.stdout.read(self.READ_CHUNK)
            if not chunk:
                break
            self._output.feed(chunk)

    def _tail(self) -> str:
        return truncate_head(self._output.text().strip(), self.error_tail)

    @property
    def is_running(self) -> bool:
        """Check whether the process has not been observed to exit yet."""
        return not self._done

    def last_error(self) -> Optional[StreamRuntimeError]:
        """
        Get the diagnostic of a terminated process.

        Returns:
            StreamRuntimeError with the captured output tail (or the exit
            status when nothing was captured), None while running or after a
            clean, silent exit
        """
        if not self._done or self._process is None:
            return None

        returncode = self._process.returncode
        detail = self._tail()
        if detail:
            return StreamRuntimeError(detail, returncode)
        if returncode:
            return StreamRuntimeError(f"exit status {returncode}", returncode)
        return None

    async def close(self) -> Optional[StreamRuntimeError]:
        """
        Terminate the process and wait until it has been reaped.

        Safe to call repeatedly and after the process exited on its own.
        Sends SIGTERM, then SIGKILL once ``kill_after`` seconds pass.

        Returns:
            Exit error of the process (a terminated process usually has one)
        """
        self._cancelled = True

        if not self._starting:
            self._done = True
            return None

        await self._spawned.wait()
        if self._watcher is None:
            return None

        if self._process is not None and self._process.returncode is None:
            self._signal(kill=False)

        if self.kill_after is None:
            return await asyncio.shield(self._watcher)

        try:
            return await asyncio.wait_for(asyncio.shield(self._watcher), timeout=self.kill_after)
        except asyncio.TimeoutError:
            logger.warning(
                f"Process {self.pid} ignored SIGTERM for {self.kill_after}s, killing it"
            )
            self._signal(kill=True)
            return await asyncio.shield(self._watcher)

    def _signal(self, kill: bool) -> None:
        assert self._process is not None
        try:
            if kill:
                self._process.kill()
            else:
                self._process.terminate()
        except ProcessLookupError:
            # Already exited; the watcher will reap it
            pass

    @property
    def pid(self) -> Optional[int]:
        """Get process id, if spawned."""
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        """Get process return code."""
        return self._process.returncode if self._process else None

    @property
    def output(self) -> str:
        """Get captured output (bounded to the capture limit)."""
        return self._output.text()
