"""Tests for subprocess execution and started process handles."""

import asyncio

import pytest

from cmt.core.exceptions import CommandError
from cmt.core.subprocess_manager import SubprocessManager

pytestmark = pytest.mark.slow


@pytest.fixture
def subprocess_manager():
    return SubprocessManager()


@pytest.mark.asyncio
class TestRunCommand:
    """Test blocking command execution."""

    async def test_run_simple_command(self, subprocess_manager):
        result = await subprocess_manager.run_command(["echo", "hello"])
        assert result.success
        assert result.stdout.strip() == "hello"
        assert result.stderr == ""

    async def test_run_command_with_error(self, subprocess_manager):
        with pytest.raises(CommandError, match="exit code 3") as exc_info:
            await subprocess_manager.run_command(["sh", "-c", "echo oops >&2; exit 3"])
        assert exc_info.value.returncode == 3
        assert "oops" in exc_info.value.stderr

    async def test_run_command_no_check(self, subprocess_manager):
        result = await subprocess_manager.run_command(["sh", "-c", "exit 1"], check=False)
        assert not result.success
        assert result.returncode == 1

    async def test_command_timeout(self, subprocess_manager):
        with pytest.raises(CommandError, match="timed out after 0.1 seconds"):
            await subprocess_manager.run_command(["sleep", "10"], timeout=0.1)

    async def test_missing_executable(self, subprocess_manager):
        with pytest.raises(CommandError, match="Failed to execute"):
            await subprocess_manager.run_command(["definitely-not-a-real-binary-cmt"])


@pytest.mark.asyncio
class TestStartCommand:
    """Test non-blocking process handles."""

    async def test_start_returns_before_exit(self, subprocess_manager):
        handle = subprocess_manager.start_command(["sleep", "0.3"])
        assert handle.returncode is None
        await handle.wait()
        assert handle.returncode == 0

    async def test_wait_raises_with_stderr(self, subprocess_manager):
        handle = subprocess_manager.start_command(["sh", "-c", "echo restore broke >&2; exit 2"])
        with pytest.raises(CommandError, match="restore broke") as exc_info:
            await handle.wait()
        assert exc_info.value.returncode == 2

    async def test_cancelled_wait_leaves_process_running(self, subprocess_manager):
        handle = subprocess_manager.start_command(["sleep", "5"])
        waiter = asyncio.create_task(handle.wait())
        await asyncio.sleep(0.1)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert handle.returncode is None
        handle.process.kill()
        handle.process.wait()

    async def test_cancelled_wait_releases_stderr_file(self, subprocess_manager):
        handle = subprocess_manager.start_command(["sleep", "5"])
        stderr_file = handle._stderr_file
        waiter = asyncio.create_task(handle.wait())
        await asyncio.sleep(0.1)
        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)

        assert stderr_file.closed
        assert handle.returncode is None
        handle.process.kill()
        handle.process.wait()

    async def test_close_after_exit_is_idempotent(self, subprocess_manager):
        handle = subprocess_manager.start_command(["true"])
        await handle.wait()
        handle.close()
        assert handle._stderr_file is None

    async def test_start_missing_executable(self, subprocess_manager):
        with pytest.raises(CommandError, match="Failed to start"):
            subprocess_manager.start_command(["definitely-not-a-real-binary-cmt"])
