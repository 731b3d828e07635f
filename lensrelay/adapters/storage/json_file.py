"""JSON file snapshot store.

Notes:
- Every save rewrites the whole file through a temp file and an atomic
  rename, so readers never see a half-written snapshot.
- Single writer only: two processes sharing one file will overwrite each
  other's state.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from lensrelay.adapters.storage.base import AbstractSnapshotStore
from lensrelay.core.errors import PersistenceAppError
from lensrelay.schemas.lens import RegistrySnapshot

logger = logging.getLogger(__name__)


class JsonFileSnapshotStore(AbstractSnapshotStore):
    """Keep the registry snapshot in a JSON document on local disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RegistrySnapshot | None:
        if not self._path.is_file():
            return None

        try:
            raw = self._path.read_text(encoding="utf-8")
            return RegistrySnapshot.model_validate_json(raw)
        except (OSError, ValidationError) as exc:
            raise PersistenceAppError(
                code="snapshot_read_failed",
                message=f"Could not read registry snapshot: {exc}",
                details={"path": str(self._path)},
            ) from exc

    def save(self, snapshot: RegistrySnapshot) -> None:
        payload = snapshot.model_dump_json(indent=2)
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceAppError(
                code="snapshot_write_failed",
                message=f"Could not write registry snapshot: {exc}",
                details={"path": str(self._path)},
            ) from exc

        logger.debug(
            "snapshot.saved",
            extra={
                "path": str(self._path),
                "lenses": len(snapshot.lenses),
                "short_links": len(snapshot.short_links),
            },
        )
