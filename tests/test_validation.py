"""Tests for endpoint parsing and validation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from cmt.core.config_loader import CMTConfig, HostConfig
from cmt.core.exceptions import CommandError, ValidationError
from cmt.core.executor import LocalExecutor, SSHExecutor
from cmt.core.subprocess_manager import SubprocessResult
from cmt.core.validation import EndpointValidator


def make_manager(fail_when=lambda argv: False):
    async def run_command(cmd, **kwargs):
        if fail_when(cmd):
            raise CommandError("exit 1", returncode=1)
        return SubprocessResult(0, "", "", cmd)

    manager = MagicMock()
    manager.run_command = AsyncMock(side_effect=run_command)
    return manager


@pytest.fixture
def config():
    return CMTConfig(
        hosts={
            "edge": HostConfig(
                hostname="10.0.0.5", user="ops", port=2222, identity_file="/keys/edge"
            )
        }
    )


class TestParseEndpoint:
    """Test endpoint address parsing."""

    def test_local_path(self):
        endpoint = EndpointValidator().parse_endpoint("/var/lib/containers/c1/")
        assert endpoint.is_local
        assert endpoint.path == "/var/lib/containers/c1"

    def test_relative_local_path_rejected(self):
        with pytest.raises(ValidationError, match="absolute"):
            EndpointValidator().parse_endpoint("containers/c1")

    def test_ssh_url(self):
        endpoint = EndpointValidator().parse_endpoint("ssh://root@node1:2200/srv/c1")
        assert endpoint.path == "/srv/c1"
        assert endpoint.ssh.hostname == "node1"
        assert endpoint.ssh.user == "root"
        assert endpoint.ssh.port == 2200

    def test_host_alias(self, config):
        endpoint = EndpointValidator(config).parse_endpoint("ssh://edge/srv/c1")
        assert endpoint.ssh.hostname == "10.0.0.5"
        assert endpoint.ssh.user == "ops"
        assert endpoint.ssh.port == 2222
        assert endpoint.ssh.identity_file == "/keys/edge"

    def test_url_user_overrides_alias(self, config):
        endpoint = EndpointValidator(config).parse_endpoint("ssh://admin@edge/srv/c1")
        assert endpoint.ssh.user == "admin"

    @pytest.mark.parametrize(
        "address, message",
        [
            ("", "empty"),
            ("http://node1/srv/c1", "Unsupported endpoint scheme"),
            ("ssh://node1", "Missing container path"),
            ("ssh:///srv/c1", "Missing host"),
            ("ssh://node1:notaport/srv/c1", "Invalid port"),
        ],
    )
    def test_invalid_addresses(self, address, message):
        with pytest.raises(ValidationError, match=message):
            EndpointValidator().parse_endpoint(address)


@pytest.mark.asyncio
class TestResolve:
    """Test pre-flight checks on both hosts."""

    async def test_resolve_returns_executors(self, config):
        validator = EndpointValidator(config, make_manager())

        source, destination = await validator.resolve("/srv/c1", "ssh://edge/srv/c1")

        assert isinstance(source, LocalExecutor)
        assert isinstance(destination, SSHExecutor)
        assert destination.target.hostname == "10.0.0.5"

    async def test_same_endpoint_rejected(self):
        validator = EndpointValidator(manager=make_manager())
        with pytest.raises(ValidationError, match="same endpoint"):
            await validator.resolve("ssh://node1/srv/c1", "ssh://node1/srv/c1/")

    async def test_missing_runtime(self):
        validator = EndpointValidator(manager=make_manager(lambda argv: "which" in argv))
        with pytest.raises(ValidationError, match="runc not available"):
            await validator.resolve("/srv/c1", "ssh://node2/srv/c1")

    async def test_missing_destination_config(self):
        manager = make_manager(lambda argv: "/dst/c1/runtime.json" in " ".join(argv))
        validator = EndpointValidator(manager=manager)
        with pytest.raises(ValidationError, match="runtime.json"):
            await validator.resolve("/srv/c1", "ssh://node2/dst/c1")

    async def test_build_plan_derives_container_id(self):
        validator = EndpointValidator(manager=make_manager())

        plan = await validator.build_plan("ssh://node1/srv/web-1", "ssh://node2/dst/web-1", True)

        assert plan.container_id == "web-1"
        assert plan.source_root == "/srv/web-1"
        assert plan.destination_root == "/dst/web-1"
        assert plan.pre_dump
