"""Command executors for the hosts taking part in a migration."""

import shlex
from abc import ABC, abstractmethod

import structlog

from ..models.host import Endpoint, ResourceLocator, SSHTarget
from ..utils import build_ssh_command
from .subprocess_manager import ProcessHandle, SubprocessManager, SubprocessResult

logger = structlog.get_logger()


class RemoteExecutor(ABC):
    """Runs commands on one host, blocking or non-blocking."""

    def __init__(self, manager: SubprocessManager | None = None, timeout: float | None = None):
        self.manager = manager or SubprocessManager()
        self.timeout = timeout
        self.logger = logger.bind(component=self.__class__.__name__.lower(), host=self.describe())

    @abstractmethod
    def build_command(self, command: str, args: tuple[str, ...]) -> list[str]:
        """Build the local argv that runs ``command args...`` on this host."""

    @abstractmethod
    def locator(self, path: str) -> ResourceLocator:
        """Return a transfer-addressable reference to ``path`` on this host."""

    @abstractmethod
    def describe(self) -> str:
        """Human readable host name for logs."""

    async def run(
        self, command: str, *args: str, timeout: float | None = None
    ) -> SubprocessResult:
        """Run a command to completion.

        Raises:
            CommandError: On non-zero exit, spawn failure or timeout
        """
        return await self.manager.run_command(
            self.build_command(command, args),
            timeout=timeout if timeout is not None else self.timeout,
        )

    async def start(self, command: str, *args: str) -> ProcessHandle:
        """Start a command and return as soon as it is launched.

        Raises:
            CommandError: If the process cannot be launched
        """
        return self.manager.start_command(self.build_command(command, args))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.describe()!r})"


class LocalExecutor(RemoteExecutor):
    """Executes commands on the machine running the migration."""

    def build_command(self, command: str, args: tuple[str, ...]) -> list[str]:
        return [command, *args]

    def locator(self, path: str) -> ResourceLocator:
        return ResourceLocator(path=path)

    def describe(self) -> str:
        return "localhost"


class SSHExecutor(RemoteExecutor):
    """Executes commands on a remote host through the ssh client."""

    def __init__(
        self,
        target: SSHTarget,
        manager: SubprocessManager | None = None,
        timeout: float | None = None,
    ):
        self.target = target
        super().__init__(manager, timeout)

    def build_command(self, command: str, args: tuple[str, ...]) -> list[str]:
        # The remote shell re-parses the command line, so quote every argument
        return [*build_ssh_command(self.target), shlex.join([command, *args])]

    def locator(self, path: str) -> ResourceLocator:
        return ResourceLocator(path=path, ssh=self.target)

    def describe(self) -> str:
        return self.target.destination


def executor_for(
    endpoint: Endpoint,
    manager: SubprocessManager | None = None,
    timeout: float | None = None,
) -> RemoteExecutor:
    """Create the executor that reaches an endpoint's host."""
    if endpoint.ssh is None:
        return LocalExecutor(manager, timeout)
    return SSHExecutor(endpoint.ssh, manager, timeout)
