"""
Shared fixtures: controllable stand-ins for asyncio subprocesses.
"""

import asyncio
import itertools
import logging
from typing import Callable, Optional

import pytest

from stream_manager.config import ManagerConfig, RunnerConfig

_pids = itertools.count(1000)


class FakeProcess:
    """Mimics asyncio.subprocess.Process; the test decides when it exits."""

    def __init__(self, command: list[str]):
        self.command = command
        self.pid = next(_pids)
        self.returncode: Optional[int] = None
        self.stdout = asyncio.StreamReader()
        self.ignore_terminate = False
        self.terminate_calls = 0
        self.kill_calls = 0
        self._exited = asyncio.Event()

    def exit(self, returncode: int = 0, output: bytes = b"") -> None:
        if self.returncode is not None:
            return
        if output:
            self.stdout.feed_data(output)
        self.stdout.feed_eof()
        self.returncode = returncode
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminate_calls += 1
        if not self.ignore_terminate:
            self.exit(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.exit(-9)


class FakeSpawner:
    """Replacement for asyncio.create_subprocess_exec."""

    def __init__(self) -> None:
        self.processes: list[FakeProcess] = []
        self.error: Optional[Exception] = None

    async def __call__(self, *command: str, **kwargs) -> FakeProcess:
        # A real spawn suspends the caller
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        process = FakeProcess(list(command))
        self.processes.append(process)
        return process

    @property
    def live(self) -> list[FakeProcess]:
        return [p for p in self.processes if p.returncode is None]


@pytest.fixture
def spawner(monkeypatch):
    """Patch process creation with a FakeSpawner."""
    fake = FakeSpawner()
    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake)
    return fake


@pytest.fixture
def manager_config():
    """Manager configuration with a short kill timeout."""
    return ManagerConfig(
        target="rtsp://media.local:8554/",
        runner=RunnerConfig(stop_timeout=0.5),
    )


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait_until():
    """Poll until predicate() is true, failing after a timeout."""
    return _wait_until


@pytest.fixture(autouse=True)
def propagate_logs():
    """Undo setup_logger() so caplog sees package records."""
    logger = logging.getLogger("stream_manager")
    yield
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
