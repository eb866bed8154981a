"""Migration plan, image generation and outcome models."""

from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..constants import DUMP_ARCHIVE, IMAGES_DIR, PREDUMP_ARCHIVE, PREDUMP_GENERATION
from ..utils import get_container_id, join_path


class MigrationPlan(BaseModel):
    """Everything needed to migrate one container. Immutable once created."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: Any  # RemoteExecutor for the source host
    destination: Any  # RemoteExecutor for the destination host
    source_root: str
    destination_root: str
    container_id: str
    pre_dump: bool = False

    @classmethod
    def create(
        cls,
        source: Any,
        destination: Any,
        source_root: str,
        destination_root: str,
        pre_dump: bool = False,
    ) -> "MigrationPlan":
        """Build a plan, deriving the container ID from the source location."""
        container_id = get_container_id(source_root)
        if not container_id:
            raise ValueError(f"Cannot derive a container ID from {source_root!r}")
        return cls(
            source=source,
            destination=destination,
            source_root=source_root,
            destination_root=destination_root,
            container_id=container_id,
            pre_dump=pre_dump,
        )


class ImageGeneration(BaseModel):
    """One checkpoint pass and the paths it uses on both hosts."""

    model_config = ConfigDict(frozen=True)

    index: int | None = None  # None for the single-pass generation
    source_images_path: str
    destination_images_path: str
    archive_file_name: str
    source_root: str

    @classmethod
    def for_plan(cls, plan: MigrationPlan, index: int | None = None) -> "ImageGeneration":
        """Lay out ``<root>/images[/<index>]`` on both hosts for a plan."""
        suffix = () if index is None else (index,)
        return cls(
            index=index,
            source_images_path=join_path(plan.source_root, IMAGES_DIR, *suffix),
            destination_images_path=join_path(plan.destination_root, IMAGES_DIR, *suffix),
            archive_file_name=PREDUMP_ARCHIVE if index == PREDUMP_GENERATION else DUMP_ARCHIVE,
            source_root=plan.source_root,
        )

    @property
    def source_archive_path(self) -> str:
        return join_path(self.source_root, self.archive_file_name)

    @property
    def destination_archive_path(self) -> str:
        return join_path(self.destination_images_path, self.archive_file_name)

    @property
    def label(self) -> str:
        return "single" if self.index is None else str(self.index)


class MigrationOutcome(BaseModel):
    """Final result of a migration, produced exactly once."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    succeeded: bool
    downtime: timedelta
    failure_cause: BaseException | None = None

    @property
    def downtime_ms(self) -> int:
        return int(self.downtime.total_seconds() * 1000)


class MigrationProgress(BaseModel):
    """Record of completed migration steps, attached to fatal errors."""

    container_id: str
    completed_steps: list[str] = Field(default_factory=list)
    source_container_stopped: bool = False
    started_at: datetime = Field(default_factory=datetime.now)

    def record(self, step: str) -> None:
        self.completed_steps.append(step)

    @property
    def last_step(self) -> str | None:
        return self.completed_steps[-1] if self.completed_steps else None
