"""In-memory snapshot store for tests and throwaway deployments."""

from __future__ import annotations

from lensrelay.adapters.storage.base import AbstractSnapshotStore
from lensrelay.schemas.lens import RegistrySnapshot


class InMemorySnapshotStore(AbstractSnapshotStore):
    """Hold the last snapshot in process memory.

    Snapshots are deep-copied on the way in and out so callers cannot mutate
    stored state through shared references.
    """

    def __init__(self, snapshot: RegistrySnapshot | None = None) -> None:
        self._snapshot = snapshot.model_copy(deep=True) if snapshot else None
        self.save_count = 0

    def load(self) -> RegistrySnapshot | None:
        if self._snapshot is None:
            return None
        return self._snapshot.model_copy(deep=True)

    def save(self, snapshot: RegistrySnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.save_count += 1
