"""Tests for local and SSH executors."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cmt.core.executor import LocalExecutor, SSHExecutor, executor_for
from cmt.core.subprocess_manager import SubprocessResult
from cmt.models.host import Endpoint, SSHTarget


@pytest.fixture
def manager():
    manager = MagicMock()
    manager.run_command = AsyncMock(return_value=SubprocessResult(0, "", "", []))
    manager.start_command = MagicMock(return_value="handle")
    return manager


def test_local_build_command():
    executor = LocalExecutor()
    assert executor.build_command("mkdir", ("-p", "/tmp/x")) == ["mkdir", "-p", "/tmp/x"]
    assert executor.locator("/tmp/x").scp_arg() == "/tmp/x"
    assert executor.describe() == "localhost"


def test_ssh_build_command_quotes_remote_arguments():
    target = SSHTarget(hostname="node1", user="root", port=2222, identity_file="/keys/id")
    executor = SSHExecutor(target)

    cmd = executor.build_command("tar", ("-czf", "/srv/my dir/dump.tar.gz"))

    assert cmd[0] == "ssh"
    assert ["-p", "2222"] == cmd[cmd.index("-p"): cmd.index("-p") + 2]
    assert ["-i", "/keys/id"] == cmd[cmd.index("-i"): cmd.index("-i") + 2]
    assert cmd[-2] == "root@node1"
    assert cmd[-1] == "tar -czf '/srv/my dir/dump.tar.gz'"


def test_ssh_locator():
    executor = SSHExecutor(SSHTarget(hostname="node1", user="root"))
    assert executor.locator("/srv/c1/dump.tar.gz").scp_arg() == "root@node1:/srv/c1/dump.tar.gz"


def test_executor_for_endpoint():
    assert isinstance(executor_for(Endpoint(path="/srv/c1")), LocalExecutor)
    remote = executor_for(Endpoint(path="/srv/c1", ssh=SSHTarget(hostname="node2")))
    assert isinstance(remote, SSHExecutor)
    assert remote.describe() == "node2"


@pytest.mark.asyncio
async def test_run_uses_default_timeout(manager):
    executor = LocalExecutor(manager, timeout=12)

    await executor.run("mkdir", "-p", "/tmp/x")
    await executor.run("stat", "/tmp/x", timeout=3)

    first, second = manager.run_command.await_args_list
    assert first.args[0] == ["mkdir", "-p", "/tmp/x"]
    assert first.kwargs["timeout"] == 12
    assert second.kwargs["timeout"] == 3


@pytest.mark.asyncio
async def test_start_delegates_to_manager(manager):
    executor = SSHExecutor(SSHTarget(hostname="node1"), manager)

    handle = await executor.start("sudo", "runc", "restore")

    assert handle == "handle"
    argv = manager.start_command.call_args.args[0]
    assert argv[-1] == "sudo runc restore"


@pytest.mark.asyncio
async def test_local_executor_runs_real_command():
    result = await LocalExecutor().run("echo", "migrated")
    assert result.stdout.strip() == "migrated"
