"""Scp transfer implementation for moving image archives between hosts."""

from ...models.host import ResourceLocator
from ...utils import ssh_options
from ..subprocess_manager import SubprocessManager
from .base import BaseTransfer


class ScpTransfer(BaseTransfer):
    """Transfer files between hosts using scp."""

    def __init__(self, manager: SubprocessManager | None = None, timeout: float | None = None):
        super().__init__()
        self.manager = manager or SubprocessManager()
        self.timeout = timeout

    def get_transfer_type(self) -> str:
        """Get the name/type of this transfer method."""
        return "scp"

    def build_command(self, source: ResourceLocator, target: ResourceLocator) -> list[str]:
        """Build the scp argv for a copy.

        When both ends are remote the data is routed through this machine
        (``-3``), so neither host needs credentials for the other.
        """
        cmd = ["scp", "-q"]
        if source.ssh is not None and target.ssh is not None:
            cmd.append("-3")

        # scp accepts one option set; the first remote end supplies it and
        # additional identity files are appended
        remotes = [loc.ssh for loc in (source, target) if loc.ssh is not None]
        if remotes:
            cmd.extend(ssh_options(remotes[0], port_flag="-P"))
            for extra in remotes[1:]:
                if extra.identity_file and extra.identity_file != remotes[0].identity_file:
                    cmd.extend(["-i", extra.identity_file])

        cmd.extend([source.scp_arg(), target.scp_arg()])
        return cmd

    async def copy(self, source: ResourceLocator, target: ResourceLocator) -> None:
        """Copy ``source`` to ``target`` with scp.

        Raises:
            CommandError: If scp exits non-zero or times out
        """
        self.logger.info("Starting scp transfer", source=str(source), target=str(target))
        await self.manager.run_command(self.build_command(source, target), timeout=self.timeout)
        self.logger.debug("Scp transfer finished", source=str(source), target=str(target))
