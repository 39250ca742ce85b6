"""
Data models for supervised streams.

A StreamRecord pairs an immutable StreamConfig with a RunnerSlot, the one
mutable cell holding the stream's current ProcessRunner.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config.models import StreamConfig
from ..executor.runner import ProcessRunner
from ..utils import AlreadyRunningError, SpawnError, get_logger, truncate_head

logger = get_logger(__name__)


class StreamState(Enum):
    """Observed state of a stream."""

    STOPPED = "stopped"
    RUNNING = "running"
    ERRORED = "errored"


@dataclass(frozen=True)
class StreamStatus:
    """State of a stream plus the diagnostic of an errored process."""

    state: StreamState
    detail: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.state == StreamState.RUNNING

    def __str__(self) -> str:
        if self.state == StreamState.RUNNING:
            return "Running"
        if self.state == StreamState.ERRORED:
            return f"Error: {self.detail}"
        return "Stopped"


STOPPED = StreamStatus(StreamState.STOPPED)
RUNNING = StreamStatus(StreamState.RUNNING)


class RunnerSlot:
    """
    Atomically replaceable reference to the current runner.

    Every transition is a compare-and-swap or swap on this cell. The lock
    only covers a single read-compare-write and is private to one record.
    """

    def __init__(self) -> None:
        self._runner: Optional[ProcessRunner] = None
        self._lock = threading.Lock()

    def load(self) -> Optional[ProcessRunner]:
        return self._runner

    def compare_and_swap(
        self, expected: Optional[ProcessRunner], new: Optional[ProcessRunner]
    ) -> bool:
        """Install ``new`` if the slot still holds ``expected``."""
        with self._lock:
            if self._runner is not expected:
                return False
            self._runner = new
            return True

    def swap(self, new: Optional[ProcessRunner]) -> Optional[ProcessRunner]:
        """Install ``new`` and return the previous runner."""
        with self._lock:
            old, self._runner = self._runner, new
            return old


@dataclass
class StreamRecord:
    """A named stream: configuration, publish target and runner slot."""

    config: StreamConfig
    target: str
    runner: RunnerSlot = field(default_factory=RunnerSlot, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def source(self) -> str:
        return self.config.source

    @property
    def start_position(self) -> float:
        return self.config.start_position

    @property
    def video_channel(self) -> Optional[int]:
        return self.config.video_channel

    @property
    def audio_channel(self) -> Optional[int]:
        return self.config.audio_channel

    @property
    def subtitle_channel(self) -> Optional[int]:
        return self.config.subtitle_channel

    @property
    def read_rate(self) -> int:
        return self.config.read_rate

    async def start(self, runner: ProcessRunner) -> None:
        """
        Install a fresh runner and spawn its process.

        The runner is installed only if the slot is empty or holds a runner
        whose process has terminated. A lost compare-and-swap is retried
        against the new slot contents until it either succeeds or finds a
        live runner.

        Args:
            runner: Unstarted runner for this stream

        Raises:
            AlreadyRunningError: If a live runner occupies the slot
            SpawnError: If the process cannot be launched
        """
        while True:
            current = self.runner.load()
            if current is not None and current.is_running:
                raise AlreadyRunningError(self.name)
            if self.runner.compare_and_swap(current, runner):
                break

        try:
            await runner.start()
        except SpawnError:
            # Leave the slot as a stop would; only if nobody replaced us
            self.runner.compare_and_swap(runner, None)
            raise

    def status(self) -> StreamStatus:
        """
        Get the current status without blocking.

        Returns:
            RUNNING while the runner is alive, ERRORED with the diagnostic
            tail after a failed exit, STOPPED otherwise
        """
        runner = self.runner.load()
        if runner is None:
            return STOPPED
        if runner.is_running:
            return RUNNING
        error = runner.last_error()
        if error is not None:
            return StreamStatus(StreamState.ERRORED, error.detail)
        return STOPPED

    async def close(self) -> None:
        """Detach the current runner and wait for its process to be reaped."""
        runner = self.runner.swap(None)
        if runner is None:
            return

        error = await runner.close()
        if error is not None:
            # Expected for a terminated process
            logger.debug(f"Stream {self.name} exited on stop: {error}")


@dataclass
class StreamView:
    """Presentation snapshot of a stream."""

    name: str
    config: StreamConfig
    status: StreamStatus

    SOURCE_LIMIT = 128
    SOURCE_KEEP = 100

    @classmethod
    def of(cls, record: StreamRecord) -> "StreamView":
        return cls(name=record.name, config=record.config, status=record.status())

    @property
    def display_source(self) -> str:
        """Source shortened to its tail for listings."""
        return truncate_head(self.config.source, self.SOURCE_LIMIT, self.SOURCE_KEEP)
