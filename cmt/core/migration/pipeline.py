"""Checkpoint, archive, transfer and unpack sequencing for one image generation."""

import structlog

from ...models.host import ResourceLocator
from ...models.migration import ImageGeneration, MigrationProgress
from ..exceptions import (
    ArchiveError,
    CheckpointError,
    CMTError,
    SetupError,
    TransferError,
    UnpackError,
)
from ..executor import RemoteExecutor
from ..settings import MigrationSettings
from ..transfer import BaseTransfer

logger = structlog.get_logger()


class CheckpointPipeline:
    """Runs the steps of one checkpoint pass strictly in order.

    Every step is fatal: a failing command is re-raised as the step's error
    and nothing is retried.
    """

    def __init__(
        self,
        transfer_service: BaseTransfer,
        settings: MigrationSettings | None = None,
        progress: MigrationProgress | None = None,
    ):
        self.transfer_service = transfer_service
        self.settings = settings or MigrationSettings()
        self.progress = progress
        self.logger = logger.bind(component="checkpoint_pipeline")

    def _privileged(self, command: str, *args: str) -> tuple[str, ...]:
        """Prefix a command with sudo when configured."""
        if self.settings.use_sudo:
            return ("sudo", command, *args)
        return (command, *args)

    def _record(self, step: str) -> None:
        if self.progress is not None:
            self.progress.record(step)

    async def prepare_directory(self, executor: RemoteExecutor, path: str) -> None:
        """Ensure ``path`` exists on the executor's host."""
        try:
            await executor.run("mkdir", "-p", path, timeout=self.settings.command_timeout)
        except CMTError as e:
            raise SetupError(
                f"Error preparing directory {path} on {executor.describe()}: {e}",
                progress=self.progress,
            ) from e
        self._record(f"prepare:{executor.describe()}:{path}")

    async def checkpoint(
        self,
        executor: RemoteExecutor,
        container_id: str,
        images_path: str,
        pre_dump: bool = False,
        prev_images_dir: str | None = None,
    ) -> None:
        """Checkpoint the running container into ``images_path``.

        Args:
            executor: Source host executor
            container_id: Container to checkpoint
            images_path: Directory receiving the image
            pre_dump: Take an incremental snapshot and leave the container running
            prev_images_dir: Previous pre-dump image to compute the delta against
        """
        self.logger.info(
            "Performing the checkpoint",
            container_id=container_id,
            images_path=images_path,
            pre_dump=pre_dump,
            prev_images_dir=prev_images_dir,
        )
        args = [
            "--id", container_id,
            "checkpoint",
            "--image-path", images_path,
        ]
        if pre_dump:
            args.append("--pre-dump")
        if prev_images_dir:
            args.extend(["--prev-images-dir", prev_images_dir])

        try:
            await executor.run(
                *self._privileged(self.settings.runtime_binary, *args),
                timeout=self.settings.checkpoint_timeout,
            )
        except CMTError as e:
            raise CheckpointError(
                f"Error performing checkpoint: {e}", progress=self.progress
            ) from e

        if self.progress is not None and not pre_dump:
            self.progress.source_container_stopped = True
        self._record("predump" if pre_dump else "checkpoint")

    async def archive(self, executor: RemoteExecutor, archive_path: str, source_dir: str) -> None:
        """Compress ``source_dir`` into ``archive_path`` on the source host."""
        try:
            await executor.run(
                *self._privileged("tar", "-czf", archive_path, "-C", f"{source_dir}/", "."),
                timeout=self.settings.checkpoint_timeout,
            )
        except CMTError as e:
            raise ArchiveError(
                f"Error compressing image in source: {e}", progress=self.progress
            ) from e
        self._record(f"archive:{archive_path}")

    async def transfer(self, source: ResourceLocator, target: ResourceLocator) -> None:
        """Move the archive between hosts through the transfer service."""
        self.logger.info(
            "Copying image to destination",
            source=str(source),
            target=str(target),
            transfer_type=self.transfer_service.get_transfer_type(),
        )
        try:
            await self.transfer_service.copy(source, target)
        except (CMTError, OSError) as e:
            raise TransferError(
                f"Error copying image files to destination: {e}", progress=self.progress
            ) from e
        self._record(f"transfer:{source.path}")

    async def unpack(self, executor: RemoteExecutor, archive_path: str, dest_dir: str) -> None:
        """Decompress the archive into ``dest_dir`` on the destination host."""
        self.logger.info("Preparing image at destination host", archive=archive_path)
        try:
            await executor.run(
                *self._privileged("tar", "-C", dest_dir, "-xvzf", archive_path),
                timeout=self.settings.checkpoint_timeout,
            )
        except CMTError as e:
            raise UnpackError(
                f"Error uncompressing image in destination: {e}", progress=self.progress
            ) from e
        self._record(f"unpack:{archive_path}")

    async def run_generation(
        self,
        source: RemoteExecutor,
        destination: RemoteExecutor,
        container_id: str,
        generation: ImageGeneration,
        pre_dump: bool = False,
        prev_images_dir: str | None = None,
    ) -> None:
        """Checkpoint one generation and land it unpacked on the destination.

        The destination images directory must already exist.
        """
        self.logger.info("Running image generation", generation=generation.label)

        await self.checkpoint(
            source, container_id, generation.source_images_path, pre_dump, prev_images_dir
        )
        await self.archive(source, generation.source_archive_path, generation.source_images_path)
        await self.transfer(
            source.locator(generation.source_archive_path),
            destination.locator(generation.destination_images_path),
        )
        await self.unpack(
            destination, generation.destination_archive_path, generation.destination_images_path
        )
