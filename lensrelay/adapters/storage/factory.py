"""Factory for the configured snapshot store."""

from lensrelay.adapters.storage.base import AbstractSnapshotStore
from lensrelay.adapters.storage.json_file import JsonFileSnapshotStore
from lensrelay.adapters.storage.memory import InMemorySnapshotStore
from lensrelay.core.config import settings
from lensrelay.core.errors import ValidationAppError


def create_snapshot_store() -> AbstractSnapshotStore:
    """Instantiate the snapshot store named by ``APP_STATE_BACKEND``.

    Returns:
        AbstractSnapshotStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown.
    """
    backend = settings.app.state_backend.lower()

    if backend == "file":
        return JsonFileSnapshotStore(settings.app.state_file)

    if backend == "memory":
        return InMemorySnapshotStore()

    raise ValidationAppError(
        code="unknown_state_backend",
        message=f"Unknown state backend: '{backend}'. Supported backends: file, memory",
    )
