"""Abstract repository interface (port) for snapshot persistence."""

from abc import ABC, abstractmethod
from typing import Any


class SnapshotRepository(ABC):
    """Port for durable snapshot storage — implemented in the infrastructure layer."""

    @abstractmethod
    def load(self) -> dict[str, Any] | None:
        """Return the most recently saved snapshot, or None if absent or unreadable."""
        ...

    @abstractmethod
    def save(self, snapshot: dict[str, Any]) -> None:
        """Durably write the snapshot.

        Raises PersistenceWarning when the write could not be completed.
        """
        ...
