"""Transfer modules for checkpoint image migration."""

from .base import BaseTransfer  # noqa: F401
from .scp import ScpTransfer  # noqa: F401

__all__ = [
    "BaseTransfer",
    "ScpTransfer",
]
