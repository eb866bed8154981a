"""Shared pytest fixtures for migration tests."""

import pytest
import structlog

from cmt.core.settings import MigrationSettings


@pytest.fixture
def events() -> list:
    """Shared, ordered log of commands, copies and clock reads."""
    return []


@pytest.fixture
def settings() -> MigrationSettings:
    """Settings with a short poll interval and no sudo."""
    return MigrationSettings(poll_interval=0.01, use_sudo=False)


@pytest.fixture(autouse=True)
def reset_structlog():
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
