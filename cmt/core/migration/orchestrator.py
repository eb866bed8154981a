"""Main migration orchestrator for live container migration."""

import time
from collections.abc import Callable

import structlog

from ...constants import CONFIG_FILE, FINAL_GENERATION, PREDUMP_GENERATION, RUNTIME_FILE
from ...models.migration import ImageGeneration, MigrationOutcome, MigrationPlan, MigrationProgress
from ...utils import join_path
from ..exceptions import CMTError, RestoreLaunchError
from ..settings import MigrationSettings
from ..transfer import BaseTransfer, ScpTransfer
from .monitor import CompletionMonitor, RestoreHandle
from .pipeline import CheckpointPipeline

logger = structlog.get_logger()


class MigrationOrchestrator:
    """Drives checkpoint, transfer and restore of one container between two hosts."""

    def __init__(
        self,
        transfer_service: BaseTransfer | None = None,
        settings: MigrationSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or MigrationSettings()
        self.transfer_service = transfer_service or ScpTransfer(
            timeout=self.settings.transfer_timeout
        )
        self.clock = clock
        self.logger = logger.bind(component="migration_orchestrator")

    async def migrate(self, plan: MigrationPlan) -> MigrationOutcome:
        """Migrate the plan's container and wait for it to run on the destination.

        Returns:
            The outcome reported by the completion monitor

        Raises:
            MigrationStepError: The first failing step; ``error.progress`` records
                what had completed, including whether the source container was stopped
        """
        progress = MigrationProgress(container_id=plan.container_id)
        pipeline = CheckpointPipeline(self.transfer_service, self.settings, progress)
        log = self.logger.bind(container_id=plan.container_id, pre_dump=plan.pre_dump)

        log.info(
            "Preparing everything to do a checkpoint",
            source=plan.source.describe(),
            destination=plan.destination.describe(),
        )

        if plan.pre_dump:
            handle, clock_start = await self._migrate_with_pre_dump(plan, pipeline)
        else:
            handle, clock_start = await self._migrate_single_pass(plan, pipeline)

        monitor = CompletionMonitor(
            plan.destination, plan.container_id, self.settings, clock=self.clock
        )
        outcome = await monitor.wait(handle, clock_start)

        if outcome.succeeded:
            log.info("Restore finished successfully", downtime_ms=outcome.downtime_ms)
        else:
            log.error(
                "Error performing restore",
                error=str(outcome.failure_cause),
                downtime_ms=outcome.downtime_ms,
            )
        return outcome

    async def _migrate_single_pass(
        self, plan: MigrationPlan, pipeline: CheckpointPipeline
    ) -> tuple[RestoreHandle, float]:
        generation = ImageGeneration.for_plan(plan)

        await pipeline.prepare_directory(plan.source, generation.source_images_path)
        await pipeline.prepare_directory(plan.destination, generation.destination_images_path)

        clock_start = self.clock()
        await pipeline.run_generation(plan.source, plan.destination, plan.container_id, generation)

        handle = await self.start_restore(plan, generation, pipeline.progress)
        return handle, clock_start

    async def _migrate_with_pre_dump(
        self, plan: MigrationPlan, pipeline: CheckpointPipeline
    ) -> tuple[RestoreHandle, float]:
        predump = ImageGeneration.for_plan(plan, PREDUMP_GENERATION)
        final = ImageGeneration.for_plan(plan, FINAL_GENERATION)

        # Pre-dump pass: the container keeps serving while this runs
        await pipeline.prepare_directory(plan.source, predump.source_images_path)
        await pipeline.prepare_directory(plan.destination, predump.destination_images_path)
        await pipeline.run_generation(
            plan.source, plan.destination, plan.container_id, predump, pre_dump=True
        )

        # Final pass: freezes the container, so downtime starts here
        await pipeline.prepare_directory(plan.destination, final.destination_images_path)
        clock_start = self.clock()
        await pipeline.run_generation(
            plan.source,
            plan.destination,
            plan.container_id,
            final,
            pre_dump=False,
            prev_images_dir=predump.source_images_path,
        )

        handle = await self.start_restore(plan, final, pipeline.progress)
        return handle, clock_start

    async def start_restore(
        self,
        plan: MigrationPlan,
        generation: ImageGeneration,
        progress: MigrationProgress | None = None,
    ) -> RestoreHandle:
        """Launch the restore on the destination without waiting for it."""
        self.logger.info(
            "Performing the restore",
            container_id=plan.container_id,
            images_path=generation.destination_images_path,
        )
        args = [
            "--id", plan.container_id,
            "restore",
            "--image-path", generation.destination_images_path,
            "--config-file", join_path(plan.destination_root, CONFIG_FILE),
            "--runtime-file", join_path(plan.destination_root, RUNTIME_FILE),
        ]
        command = [self.settings.runtime_binary, *args]
        if self.settings.use_sudo:
            command.insert(0, "sudo")

        try:
            process = await plan.destination.start(*command)
        except CMTError as e:
            raise RestoreLaunchError(f"Error performing restore: {e}", progress=progress) from e

        if progress is not None:
            progress.record("restore")
        return RestoreHandle(
            process=process,
            container_id=plan.container_id,
            images_path=generation.destination_images_path,
            destination=plan.destination,
        )
