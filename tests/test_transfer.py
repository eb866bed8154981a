"""Tests for scp transfers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cmt.core.exceptions import CommandError
from cmt.core.transfer import ScpTransfer
from cmt.core.subprocess_manager import SubprocessResult
from cmt.models.host import ResourceLocator, SSHTarget

SRC = SSHTarget(hostname="src-host", user="root", identity_file="/keys/src")
DST = SSHTarget(hostname="dst-host", user="admin", port=2200, identity_file="/keys/dst")


def test_remote_to_remote_routes_through_local():
    cmd = ScpTransfer().build_command(
        ResourceLocator(path="/srv/c1/dump.tar.gz", ssh=SRC),
        ResourceLocator(path="/dst/c1/images", ssh=DST),
    )

    assert cmd[:3] == ["scp", "-q", "-3"]
    assert cmd[-2:] == ["root@src-host:/srv/c1/dump.tar.gz", "admin@dst-host:/dst/c1/images"]
    identities = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-i"]
    assert identities == ["/keys/src", "/keys/dst"]


def test_local_to_remote_uses_scp_port_flag():
    cmd = ScpTransfer().build_command(
        ResourceLocator(path="/srv/c1/dump.tar.gz"),
        ResourceLocator(path="/dst/c1/images", ssh=DST),
    )

    assert "-3" not in cmd
    assert cmd[cmd.index("-P") + 1] == "2200"
    assert cmd[-2:] == ["/srv/c1/dump.tar.gz", "admin@dst-host:/dst/c1/images"]


def test_local_to_local_has_no_ssh_options():
    cmd = ScpTransfer().build_command(ResourceLocator(path="/a"), ResourceLocator(path="/b"))
    assert cmd == ["scp", "-q", "/a", "/b"]


def test_ipv6_host_is_bracketed():
    locator = ResourceLocator(path="/srv/c1/dump.tar.gz", ssh=SSHTarget(hostname="fd00::1", user="root"))
    assert locator.scp_arg() == "root@[fd00::1]:/srv/c1/dump.tar.gz"


@pytest.mark.asyncio
async def test_copy_runs_scp_with_timeout():
    manager = MagicMock()
    manager.run_command = AsyncMock(return_value=SubprocessResult(0, "", "", []))
    transfer = ScpTransfer(manager, timeout=42)

    await transfer.copy(ResourceLocator(path="/a"), ResourceLocator(path="/b", ssh=DST))

    manager.run_command.assert_awaited_once()
    assert manager.run_command.await_args.kwargs["timeout"] == 42


@pytest.mark.asyncio
async def test_copy_propagates_failure():
    manager = MagicMock()
    manager.run_command = AsyncMock(side_effect=CommandError("lost connection", returncode=1))
    transfer = ScpTransfer(manager)

    with pytest.raises(CommandError, match="lost connection"):
        await transfer.copy(ResourceLocator(path="/a"), ResourceLocator(path="/b", ssh=DST))
