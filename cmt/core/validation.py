"""Endpoint parsing and pre-flight validation for migrations."""

import posixpath
from urllib.parse import urlsplit

import structlog

from ..constants import CONFIG_FILE, DEFAULT_SSH_PORT, RUNTIME_FILE, SSH_SCHEME
from ..models.host import Endpoint, SSHTarget
from ..models.migration import MigrationPlan
from ..utils import get_container_id, join_path
from .config_loader import CMTConfig
from .exceptions import CommandError, ValidationError
from .executor import RemoteExecutor, executor_for
from .settings import MigrationSettings
from .subprocess_manager import SubprocessManager

logger = structlog.get_logger()


class EndpointValidator:
    """Turns user-supplied endpoint strings into validated executors."""

    def __init__(
        self,
        config: CMTConfig | None = None,
        manager: SubprocessManager | None = None,
    ):
        self.config = config or CMTConfig()
        self.manager = manager or SubprocessManager()
        self.logger = logger.bind(component="endpoint_validator")

    @property
    def settings(self) -> MigrationSettings:
        return self.config.migration

    def parse_endpoint(self, address: str) -> Endpoint:
        """Parse ``ssh://[user@]host[:port]/path`` or a local absolute path.

        Host names matching an alias in the hosts file take user, port and
        identity file from it unless the address sets them.

        Raises:
            ValidationError: If the address cannot be used as an endpoint
        """
        if not address:
            raise ValidationError("Endpoint address is empty")

        parts = urlsplit(address)
        if not parts.scheme:
            path = posixpath.normpath(address)
            if not posixpath.isabs(path):
                raise ValidationError(f"Local endpoint must be an absolute path: {address}")
            return Endpoint(path=path)

        if parts.scheme != SSH_SCHEME:
            raise ValidationError(f"Unsupported endpoint scheme {parts.scheme!r} in {address}")
        if not parts.hostname:
            raise ValidationError(f"Missing host in endpoint {address}")

        try:
            port = parts.port
        except ValueError as e:
            raise ValidationError(f"Invalid port in endpoint {address}: {e}") from e

        path = posixpath.normpath(parts.path) if parts.path else ""
        if not path or path == "/":
            raise ValidationError(f"Missing container path in endpoint {address}")

        alias = self.config.hosts.get(parts.hostname)
        target = SSHTarget(
            hostname=alias.hostname if alias else parts.hostname,
            user=parts.username or (alias.user if alias else None),
            port=port or (alias.port if alias else DEFAULT_SSH_PORT),
            identity_file=alias.identity_file if alias else None,
        )
        return Endpoint(path=path, ssh=target)

    async def resolve(
        self, src_address: str, dst_address: str
    ) -> tuple[RemoteExecutor, RemoteExecutor]:
        """Validate both endpoints and return their executors.

        Raises:
            ValidationError: If either endpoint is unusable
        """
        source = self.parse_endpoint(src_address)
        destination = self.parse_endpoint(dst_address)

        if source == destination:
            raise ValidationError("Source and destination are the same endpoint")
        if not get_container_id(source.path):
            raise ValidationError(f"Cannot derive a container ID from {source.path}")

        src_exec = executor_for(source, self.manager, self.settings.command_timeout)
        dst_exec = executor_for(destination, self.manager, self.settings.command_timeout)

        self.logger.info("Performing validations", source=str(source), destination=str(destination))
        for executor in (src_exec, dst_exec):
            await self._require_runtime(executor)
        await self._require(src_exec, "-d", source.path, "container directory")
        for name in (CONFIG_FILE, RUNTIME_FILE):
            await self._require(dst_exec, "-f", join_path(destination.path, name), name)

        return src_exec, dst_exec

    async def build_plan(self, src_address: str, dst_address: str, pre_dump: bool) -> MigrationPlan:
        """Validate endpoints and build the migration plan for them."""
        src_exec, dst_exec = await self.resolve(src_address, dst_address)
        return MigrationPlan.create(
            source=src_exec,
            destination=dst_exec,
            source_root=self.parse_endpoint(src_address).path,
            destination_root=self.parse_endpoint(dst_address).path,
            pre_dump=pre_dump,
        )

    async def _require_runtime(self, executor: RemoteExecutor) -> None:
        runtime = self.settings.runtime_binary
        try:
            await executor.run("which", runtime)
        except CommandError as e:
            raise ValidationError(f"{runtime} not available on host {executor.describe()}: {e}") from e

    async def _require(self, executor: RemoteExecutor, test_flag: str, path: str, what: str) -> None:
        try:
            await executor.run("test", test_flag, path)
        except CommandError as e:
            raise ValidationError(f"Missing {what} on {executor.describe()}: {path}") from e
