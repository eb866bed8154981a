"""Utility functions shared by executors, transfers and the orchestrator."""

import posixpath
from typing import TYPE_CHECKING

from .constants import (
    DEFAULT_SSH_PORT,
    SSH_BATCH_MODE,
    SSH_ERROR_LOG_LEVEL,
    SSH_NO_HOST_CHECK,
    SSH_NO_KNOWN_HOSTS,
)

if TYPE_CHECKING:
    from .models.host import SSHTarget


def ssh_options(target: "SSHTarget", port_flag: str = "-p") -> list[str]:
    """Build the non-interactive SSH option list for a target.

    Args:
        target: SSH connection details
        port_flag: Flag used for the port (``-p`` for ssh, ``-P`` for scp)

    Returns:
        Option list without the program name or destination
    """
    options = [
        "-o", SSH_NO_HOST_CHECK,
        "-o", SSH_NO_KNOWN_HOSTS,
        "-o", SSH_ERROR_LOG_LEVEL,
        "-o", "ConnectTimeout=10",
        "-o", SSH_BATCH_MODE,
    ]

    if target.identity_file:
        options.extend(["-i", target.identity_file])

    if target.port != DEFAULT_SSH_PORT:
        options.extend([port_flag, str(target.port)])

    return options


def build_ssh_command(target: "SSHTarget") -> list[str]:
    """Build SSH command prefix for a host.

    Example:
        >>> build_ssh_command(SSHTarget(hostname="node1", user="root"))
        ['ssh', '-o', 'StrictHostKeyChecking=no', ..., 'root@node1']
    """
    return ["ssh", *ssh_options(target), target.destination]


def get_container_id(path: str) -> str:
    """Derive the container ID from the last segment of a container directory path."""
    return posixpath.basename(path.rstrip("/"))


def join_path(root: str, *parts: str | int) -> str:
    """Join remote POSIX path segments."""
    return posixpath.join(root, *(str(part) for part in parts))
