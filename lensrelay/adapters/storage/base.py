"""Snapshot store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lensrelay.schemas.lens import RegistrySnapshot


class AbstractSnapshotStore(ABC):
    """Durable home for the registry snapshot."""

    @abstractmethod
    def load(self) -> RegistrySnapshot | None:
        """Read the last saved snapshot.

        Returns:
            The snapshot, or None when nothing has been saved yet.

        Raises:
            PersistenceAppError: If the stored state exists but cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: RegistrySnapshot) -> None:
        """Replace the stored state with ``snapshot``.

        Raises:
            PersistenceAppError: If the write fails.
        """
        raise NotImplementedError
