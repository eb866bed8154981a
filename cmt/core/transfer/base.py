"""Abstract base class for transfer methods."""

from abc import ABC, abstractmethod

import structlog

from ...models.host import ResourceLocator

logger = structlog.get_logger()


class BaseTransfer(ABC):
    """Abstract base class for all transfer methods."""

    def __init__(self):
        self.logger = logger.bind(component=self.__class__.__name__.lower())

    @abstractmethod
    async def copy(self, source: ResourceLocator, target: ResourceLocator) -> None:
        """Copy a resource between two hosts.

        Args:
            source: Resource to copy
            target: Destination path (a directory receives the file under its own name)

        Raises:
            CMTError: If the copy fails
        """

    @abstractmethod
    def get_transfer_type(self) -> str:
        """Get the name/type of this transfer method."""
