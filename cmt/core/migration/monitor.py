"""Completion monitoring for a restore in flight.

Two observers run concurrently once the restore process has been started:

- the process-wait task, which catches a restore that dies before the
  container comes up;
- the liveness-poll task, which checks the runtime's state marker on the
  destination host, once immediately and then every ``poll_interval`` seconds.

A restored container normally keeps the restore process alive forever, so the
monitor resolves on whichever observer is conclusive first. The outcome slot
accepts exactly one resolution; later signals are ignored and the losing task
is cancelled.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

import structlog

from ...models.migration import MigrationOutcome
from ...utils import join_path
from ..exceptions import CMTError, CommandError, RestoreFailure
from ..executor import RemoteExecutor
from ..settings import MigrationSettings
from ..subprocess_manager import ProcessHandle

logger = structlog.get_logger()


@dataclass
class RestoreHandle:
    """The in-flight restore process on the destination host."""

    process: ProcessHandle
    container_id: str
    images_path: str
    destination: RemoteExecutor


class OutcomeSlot:
    """Holds a single MigrationOutcome; the first resolve wins, the rest are no-ops."""

    def __init__(self):
        self._future: asyncio.Future[MigrationOutcome] = (
            asyncio.get_running_loop().create_future()
        )

    @property
    def resolved(self) -> bool:
        return self._future.done()

    def resolve(self, outcome: MigrationOutcome) -> bool:
        """Store ``outcome`` unless already resolved. Returns True for the winner."""
        if self._future.done():
            return False
        self._future.set_result(outcome)
        return True

    def result(self) -> MigrationOutcome:
        return self._future.result()

    async def wait(self) -> MigrationOutcome:
        # Shield so a caller-side timeout does not cancel the slot itself
        return await asyncio.shield(self._future)


class CompletionMonitor:
    """Races restore-process exit against destination liveness polling."""

    def __init__(
        self,
        destination: RemoteExecutor,
        container_id: str,
        settings: MigrationSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        liveness_check: Callable[[], Awaitable[bool]] | None = None,
    ):
        self.destination = destination
        self.container_id = container_id
        self.settings = settings or MigrationSettings()
        self.clock = clock
        self._liveness_check = liveness_check or self.is_running
        self.logger = logger.bind(component="completion_monitor", container_id=container_id)

    @property
    def state_marker(self) -> str:
        return join_path(self.settings.runtime_state_dir, self.container_id)

    async def is_running(self) -> bool:
        """Check the runtime state marker for the container on the destination."""
        try:
            await self.destination.run(
                "stat", self.state_marker, timeout=self.settings.command_timeout
            )
            marker_present = True
        except CommandError:
            marker_present = False
        return marker_present == self.settings.running_when_marker_present

    async def wait(self, handle: RestoreHandle, clock_start: float) -> MigrationOutcome:
        """Resolve the migration outcome for a started restore.

        Args:
            handle: Restore process started on the destination
            clock_start: Downtime clock start, in ``clock()`` units

        Returns:
            The single MigrationOutcome for this migration
        """
        slot = OutcomeSlot()
        tasks = [
            asyncio.create_task(
                self._guard(self._wait_for_exit(handle, slot, clock_start), slot, clock_start),
                name=f"restore-wait-{self.container_id}",
            ),
            asyncio.create_task(
                self._guard(self._poll_liveness(slot, clock_start), slot, clock_start),
                name=f"liveness-poll-{self.container_id}",
            ),
        ]

        try:
            outcome = await asyncio.wait_for(slot.wait(), self.settings.restore_timeout)
        except asyncio.TimeoutError:
            self._resolve(
                slot,
                clock_start,
                RestoreFailure(
                    f"container not running after {self.settings.restore_timeout} seconds"
                ),
            )
            outcome = slot.result()
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        return outcome

    def _resolve(
        self, slot: OutcomeSlot, clock_start: float, cause: BaseException | None = None
    ) -> bool:
        downtime = timedelta(seconds=max(0.0, self.clock() - clock_start))
        won = slot.resolve(
            MigrationOutcome(succeeded=cause is None, downtime=downtime, failure_cause=cause)
        )
        if not won:
            self.logger.debug("Outcome already resolved, ignoring late signal", failed=cause is not None)
        return won

    async def _guard(self, observer: Awaitable[None], slot: OutcomeSlot, clock_start: float) -> None:
        """Turn an unexpected observer crash into a failure instead of a hang."""
        try:
            await observer
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error("Completion observer crashed", error=str(e))
            self._resolve(slot, clock_start, RestoreFailure(f"completion monitor error: {e}"))

    async def _wait_for_exit(
        self, handle: RestoreHandle, slot: OutcomeSlot, clock_start: float
    ) -> None:
        try:
            await handle.process.wait()
        except CMTError as e:
            failure = RestoreFailure(f"Error performing restore: {e}")
            failure.__cause__ = e
            if self._resolve(slot, clock_start, failure):
                self.logger.warning("Restore process failed before container was running", error=str(e))
            return

        # A clean exit still succeeds if the container made it to running
        if not slot.resolved and await self._liveness_check():
            self._resolve(slot, clock_start)
            return
        self._resolve(
            slot,
            clock_start,
            RestoreFailure("restore process exited before the container was running"),
        )

    async def _poll_liveness(self, slot: OutcomeSlot, clock_start: float) -> None:
        self.logger.info("Waiting for container to start...")
        # Immediate check so a fast restore does not wait a full interval
        if await self._liveness_check():
            self._resolve(slot, clock_start)
            return

        while not slot.resolved:
            await asyncio.sleep(self.settings.poll_interval)
            if await self._liveness_check():
                self._resolve(slot, clock_start)
                return
