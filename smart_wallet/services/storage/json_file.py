"""
JSON File Snapshot Storage

The snapshot is written to a temporary file next to the target and then
moved into place, so a crash mid-write leaves the previous snapshot
intact. Transient OS errors are retried a few times before giving up.
"""

import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from smart_wallet.config import get_settings
from smart_wallet.models.ledger import AppState
from smart_wallet.services.storage.interface import (
    CorruptSnapshotError,
    SnapshotStorageInterface,
    StorageError,
)


class JsonFileSnapshotStorage(SnapshotStorageInterface):
    """Keeps the wallet snapshot as a pretty-printed JSON file."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path or get_settings().storage.snapshot_path)

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_atomic(self, document: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(document, encoding="utf-8")
        os.replace(tmp_path, self._path)

    async def save_snapshot(self, state: AppState) -> bool:
        """Serialize and atomically replace the snapshot file."""
        try:
            self._write_atomic(state.model_dump_json(indent=2))
            return True
        except OSError as e:
            raise StorageError(f"Failed to save snapshot to {self._path}: {e}")

    async def load_snapshot(self) -> Optional[AppState]:
        """Read the snapshot file, or None if it does not exist yet."""
        if not self._path.exists():
            return None
        try:
            document = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read snapshot {self._path}: {e}")

        try:
            return AppState.model_validate_json(document)
        except ValidationError as e:
            raise CorruptSnapshotError(f"Snapshot {self._path} is not a valid wallet: {e}")

    async def clear(self) -> bool:
        try:
            self._path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to remove snapshot {self._path}: {e}")
