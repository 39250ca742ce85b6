"""
Tests for the process runner.

These spawn short-lived Python interpreters in place of ffmpeg.
"""

import sys

import pytest

from stream_manager.executor import OutputTail, ProcessRunner
from stream_manager.utils import SpawnError


def python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="relies on POSIX signals")


class TestOutputTail:
    """Test bounded output capture."""

    def test_keeps_everything_under_limit(self):
        tail = OutputTail(limit=16)
        tail.feed(b"hello ")
        tail.feed(b"world")

        assert tail.text() == "hello world"
        assert tail.total == 11

    def test_drops_oldest_bytes(self):
        tail = OutputTail(limit=8)
        tail.feed(b"0123456789")
        tail.feed(b"ab")

        assert tail.text() == "456789ab"
        assert len(tail) == 8
        assert tail.total == 12

    def test_invalid_utf8_replaced(self):
        tail = OutputTail(limit=8)
        tail.feed(b"\xff\xfeok")

        assert tail.text().endswith("ok")


class TestProcessRunner:
    """Test ProcessRunner against real child processes."""

    def test_initial_state(self):
        runner = ProcessRunner(python("pass"))

        assert runner.is_running
        assert runner.pid is None
        assert runner.returncode is None
        assert runner.last_error() is None

    @pytest.mark.asyncio
    async def test_clean_exit(self, wait_until):
        runner = ProcessRunner(python("pass"))
        await runner.start()

        await wait_until(lambda: not runner.is_running)

        assert runner.returncode == 0
        assert runner.last_error() is None
        assert await runner.close() is None

    @pytest.mark.asyncio
    async def test_error_output_captured(self, wait_until):
        code = "import sys; sys.stderr.write('Invalid data found when processing input\\n'); sys.exit(1)"
        runner = ProcessRunner(python(code))
        await runner.start()

        await wait_until(lambda: not runner.is_running)

        error = runner.last_error()
        assert error is not None
        assert error.detail == "Invalid data found when processing input"
        assert error.returncode == 1

    @pytest.mark.asyncio
    async def test_stdout_is_captured_too(self, wait_until):
        runner = ProcessRunner(python("print('from stdout')"))
        await runner.start()

        await wait_until(lambda: not runner.is_running)

        assert runner.output.strip() == "from stdout"
        # Any diagnostic output counts, even on exit code 0
        assert runner.last_error().detail == "from stdout"

    @pytest.mark.asyncio
    async def test_error_detail_truncated(self, wait_until):
        code = "import sys; sys.stderr.write('x' * 300 + 'END'); sys.exit(1)"
        runner = ProcessRunner(python(code), error_tail=128)
        await runner.start()

        await wait_until(lambda: not runner.is_running)

        detail = runner.last_error().detail
        assert detail.startswith("...")
        assert detail.endswith("END")
        assert len(detail) == 3 + 128

    @pytest.mark.asyncio
    async def test_silent_failure_reports_exit_status(self, wait_until):
        runner = ProcessRunner(python("import sys; sys.exit(3)"))
        await runner.start()

        await wait_until(lambda: not runner.is_running)

        assert runner.last_error().detail == "exit status 3"

    @pytest.mark.asyncio
    async def test_capture_is_bounded(self, wait_until):
        code = "import sys; sys.stdout.write('y' * 100000)"
        runner = ProcessRunner(python(code), capture_limit=256)
        await runner.start()

        await wait_until(lambda: not runner.is_running)

        assert len(runner.output) == 256

    @pytest.mark.asyncio
    async def test_spawn_failure(self, tmp_path):
        runner = ProcessRunner([str(tmp_path / "no-such-ffmpeg")])

        with pytest.raises(SpawnError) as exc_info:
            await runner.start()

        assert exc_info.value.command == [str(tmp_path / "no-such-ffmpeg")]
        assert not runner.is_running
        assert runner.last_error() is None
        assert await runner.close() is None

    @pytest.mark.asyncio
    async def test_unencodable_argument_is_spawn_failure(self):
        runner = ProcessRunner(python("pass") + ["movie\x00.mkv"])

        with pytest.raises(SpawnError):
            await runner.start()

        assert not runner.is_running
        assert await runner.close() is None

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self):
        runner = ProcessRunner(python("pass"))
        await runner.start()

        with pytest.raises(SpawnError):
            await runner.start()

        await runner.close()

    @pytest.mark.asyncio
    async def test_close_before_start(self):
        runner = ProcessRunner(python("pass"))

        assert await runner.close() is None
        assert not runner.is_running
        with pytest.raises(SpawnError):
            await runner.start()

    @posix_only
    @pytest.mark.asyncio
    async def test_close_terminates_process(self):
        runner = ProcessRunner(python("import time; time.sleep(60)"))
        await runner.start()
        assert runner.is_running

        error = await runner.close()

        assert not runner.is_running
        assert runner.returncode is not None and runner.returncode < 0
        assert error is not None and error.returncode == runner.returncode

    @posix_only
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        runner = ProcessRunner(python("import time; time.sleep(60)"))
        await runner.start()

        first = await runner.close()
        second = await runner.close()

        assert first.returncode == second.returncode

    @posix_only
    @pytest.mark.asyncio
    async def test_close_kills_after_timeout(self, wait_until):
        code = (
            "import signal, sys, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(60)\n"
        )
        runner = ProcessRunner(python(code), kill_after=0.2)
        await runner.start()
        # SIGTERM must arrive after the handler is installed
        await wait_until(lambda: "ready" in runner.output)

        await runner.close()

        assert runner.returncode == -9
