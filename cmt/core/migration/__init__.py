"""Live migration system: checkpoint pipeline, orchestrator and completion monitor."""

from .monitor import CompletionMonitor, OutcomeSlot, RestoreHandle  # noqa: F401
from .orchestrator import MigrationOrchestrator  # noqa: F401
from .pipeline import CheckpointPipeline  # noqa: F401

__all__ = [
    "CheckpointPipeline",
    "CompletionMonitor",
    "MigrationOrchestrator",
    "OutcomeSlot",
    "RestoreHandle",
]
