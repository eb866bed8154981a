"""Subprocess execution with timeouts and detached process handles."""

import asyncio
import os
import subprocess
import tempfile
from typing import IO, Any

import structlog

from .exceptions import CommandError

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 30  # Default timeout in seconds
KILL_TIMEOUT = 5  # Time to wait after SIGTERM before SIGKILL
EXIT_POLL_INTERVAL = 0.05  # Seconds between exit checks of a started process
STDERR_TAIL_BYTES = 2000


class SubprocessResult:
    """Result of a subprocess execution."""

    def __init__(self, returncode: int, stdout: str, stderr: str, cmd: list[str]):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd = cmd

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0


class ProcessHandle:
    """A started process that can be awaited without blocking the event loop.

    The process is not tied to the event loop: abandoning a handle leaves the
    process running, which is what a restored container needs.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        cmd: list[str],
        stderr_file: IO[bytes] | None = None,
        poll_interval: float = EXIT_POLL_INTERVAL,
    ):
        self.process = process
        self.cmd = cmd
        self._stderr_file = stderr_file
        self._poll_interval = poll_interval

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.poll()

    async def wait(self) -> None:
        """Wait for the process to exit.

        Raises:
            CommandError: If the process exits with a non-zero status
        """
        try:
            while self.process.poll() is None:
                await asyncio.sleep(self._poll_interval)
            returncode = self.process.returncode
            stderr = self._read_stderr_tail()
        finally:
            self.close()

        if returncode != 0:
            raise CommandError(
                f"Command failed with exit code {returncode}: {stderr or 'no error output'}",
                returncode=returncode,
                stderr=stderr,
            )

    def close(self) -> None:
        """Release the stderr spool file. The process itself is left running."""
        if self._stderr_file is not None:
            self._stderr_file.close()
            self._stderr_file = None

    def _read_stderr_tail(self) -> str:
        if self._stderr_file is None:
            return ""
        self._stderr_file.seek(0, os.SEEK_END)
        size = self._stderr_file.tell()
        self._stderr_file.seek(max(0, size - STDERR_TAIL_BYTES))
        return self._stderr_file.read().decode(errors="replace").strip()


class SubprocessManager:
    """Runs commands with timeouts and proper process cleanup."""

    async def run_command(
        self,
        cmd: list[str],
        *,
        timeout: float | None = None,
        check: bool = True,
    ) -> SubprocessResult:
        """
        Run a command to completion.

        Args:
            cmd: Command and arguments as a list
            timeout: Timeout in seconds (default: DEFAULT_TIMEOUT)
            check: Raise CommandError if the command exits non-zero

        Returns:
            SubprocessResult with returncode, stdout, and stderr

        Raises:
            CommandError: If the command cannot be spawned, times out, or
                (with check=True) fails
        """
        if timeout is None:
            timeout = DEFAULT_TIMEOUT

        logger.debug("Executing command", command=" ".join(cmd), timeout=timeout)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(f"Failed to execute {cmd[0]}: {e}") from e

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                "Command timed out, terminating process",
                command=" ".join(cmd),
                timeout=timeout,
                pid=process.pid,
            )
            await self._terminate(process)
            raise CommandError(f"Command timed out after {timeout} seconds: {' '.join(cmd)}") from e
        finally:
            if process.returncode is None:
                await self._terminate(process)

        result = SubprocessResult(
            returncode=process.returncode or 0,
            stdout=stdout_bytes.decode(errors="replace") if stdout_bytes else "",
            stderr=stderr_bytes.decode(errors="replace") if stderr_bytes else "",
            cmd=cmd,
        )

        if check and not result.success:
            error_msg = result.stderr.strip() or result.stdout.strip() or "Command failed"
            raise CommandError(
                f"Command failed with exit code {result.returncode}: {error_msg}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        return result

    def start_command(self, cmd: list[str]) -> ProcessHandle:
        """Start a command without waiting for it to finish.

        Stdout is discarded; stderr is spooled to a temporary file so a failing
        process can report why.

        Raises:
            CommandError: If the command cannot be spawned
        """
        logger.debug("Starting command", command=" ".join(cmd))

        stderr_file = tempfile.TemporaryFile()
        try:
            process = subprocess.Popen(  # nosec B603
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=stderr_file,
                start_new_session=True,
            )
        except OSError as e:
            stderr_file.close()
            raise CommandError(f"Failed to start {cmd[0]}: {e}") from e

        logger.debug("Command started", command=" ".join(cmd), pid=process.pid)
        return ProcessHandle(process, cmd, stderr_file)

    async def _terminate(self, process: Any) -> None:
        """Terminate gracefully, then SIGKILL."""
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Process did not terminate gracefully, sending SIGKILL", pid=process.pid)
            process.kill()
            await process.wait()
        except ProcessLookupError:
            # Process already terminated
            pass
