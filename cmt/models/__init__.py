"""Data models for container migration."""

from .host import Endpoint, ResourceLocator, SSHTarget
from .migration import ImageGeneration, MigrationOutcome, MigrationPlan, MigrationProgress

__all__ = [
    "Endpoint",
    "ImageGeneration",
    "MigrationOutcome",
    "MigrationPlan",
    "MigrationProgress",
    "ResourceLocator",
    "SSHTarget",
]
