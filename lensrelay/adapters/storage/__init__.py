"""Snapshot storage adapters.

The registry keeps its state in memory and hands complete snapshots to one of
these stores, so the backing medium can change without touching the registry.
"""

from lensrelay.adapters.storage.base import AbstractSnapshotStore
from lensrelay.adapters.storage.factory import create_snapshot_store
from lensrelay.adapters.storage.json_file import JsonFileSnapshotStore
from lensrelay.adapters.storage.memory import InMemorySnapshotStore

__all__ = [
    "AbstractSnapshotStore",
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    "create_snapshot_store",
]
