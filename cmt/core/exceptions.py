"""Core exceptions for container migration operations."""

from typing import Any


class CMTError(Exception):
    """Base exception for container migration operations."""


class CommandError(CMTError):
    """Command execution on a host failed."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ConfigurationError(CMTError):
    """Configuration validation or loading failed."""


class ValidationError(CMTError):
    """Source or destination endpoint failed validation."""


class MigrationStepError(CMTError):
    """A migration step failed; the whole migration is aborted."""

    step = "migration"

    def __init__(self, message: str, progress: Any = None):
        super().__init__(message)
        self.progress = progress


class SetupError(MigrationStepError):
    """Preparing an image directory failed."""

    step = "setup"


class CheckpointError(MigrationStepError):
    """The checkpoint runtime exited with an error."""

    step = "checkpoint"


class ArchiveError(MigrationStepError):
    """Compressing the checkpoint image on the source host failed."""

    step = "archive"


class TransferError(MigrationStepError):
    """Copying the image archive between hosts failed."""

    step = "transfer"


class UnpackError(MigrationStepError):
    """Decompressing the image archive on the destination host failed."""

    step = "unpack"


class RestoreLaunchError(MigrationStepError):
    """The restore process could not be started on the destination host."""

    step = "restore"


class RestoreFailure(CMTError):
    """Restore process ended before the container was observed running."""
