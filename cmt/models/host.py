"""Host and endpoint data models."""

from pydantic import BaseModel, ConfigDict

from ..constants import DEFAULT_SSH_PORT


class SSHTarget(BaseModel):
    """Connection details for a host reached over SSH."""

    model_config = ConfigDict(frozen=True)

    hostname: str
    user: str | None = None
    port: int = DEFAULT_SSH_PORT
    identity_file: str | None = None

    @property
    def destination(self) -> str:
        """Return ``user@host`` with IPv6 addresses bracketed."""
        hostname = self.hostname
        if ":" in hostname and not (hostname.startswith("[") and hostname.endswith("]")):
            hostname = f"[{hostname}]"
        return f"{self.user}@{hostname}" if self.user else hostname


class Endpoint(BaseModel):
    """A validated migration endpoint: a container directory on some host."""

    model_config = ConfigDict(frozen=True)

    path: str
    ssh: SSHTarget | None = None

    @property
    def is_local(self) -> bool:
        return self.ssh is None

    def __str__(self) -> str:
        if self.ssh is None:
            return self.path
        return f"ssh://{self.ssh.destination}:{self.ssh.port}{self.path}"


class ResourceLocator(BaseModel):
    """Transfer-addressable reference to a path on a host."""

    model_config = ConfigDict(frozen=True)

    path: str
    ssh: SSHTarget | None = None

    def scp_arg(self) -> str:
        """Render as an scp source/target argument."""
        if self.ssh is None:
            return self.path
        return f"{self.ssh.destination}:{self.path}"

    def __str__(self) -> str:
        return self.scp_arg()
