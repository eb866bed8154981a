"""Migration settings configuration.

Provides centralized runtime and timeout configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MigrationSettings(BaseSettings):
    """Checkpoint runtime, polling and timeout configuration."""

    runtime_binary: str = Field("runc", description="Checkpoint/restore runtime executable")

    use_sudo: bool = Field(True, description="Run runtime and tar commands through sudo")

    runtime_state_dir: str = Field(
        "/var/run/opencontainer/containers",
        description="Directory holding the runtime's per-container state marker",
    )

    running_when_marker_present: bool = Field(
        True, description="Treat an existing state marker as a running container"
    )

    poll_interval: float = Field(
        0.2, gt=0, description="Liveness polling interval in seconds"
    )

    restore_timeout: float = Field(
        300.0,
        gt=0,
        description="Give up waiting for the restored container after this many seconds",
    )

    command_timeout: float = Field(30, description="Short remote command timeout in seconds")

    checkpoint_timeout: float = Field(
        300, description="Checkpoint and archive operations timeout in seconds"
    )

    transfer_timeout: float = Field(600, description="Image transfer timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="CMT_", env_file=".env", extra="ignore")
