"""In-memory snapshot storage for tests and throwaway sessions."""

from typing import Optional

from pydantic import ValidationError

from smart_wallet.models.ledger import AppState
from smart_wallet.services.storage.interface import (
    CorruptSnapshotError,
    SnapshotStorageInterface,
)


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """
    Holds the serialized snapshot in memory.

    The state is stored as JSON, not by reference, so a loaded state
    never aliases the live one.
    """

    def __init__(self, document: Optional[str] = None):
        self._document = document
        self.save_count = 0

    @property
    def document(self) -> Optional[str]:
        return self._document

    async def save_snapshot(self, state: AppState) -> bool:
        self._document = state.model_dump_json()
        self.save_count += 1
        return True

    async def load_snapshot(self) -> Optional[AppState]:
        if self._document is None:
            return None
        try:
            return AppState.model_validate_json(self._document)
        except ValidationError as e:
            raise CorruptSnapshotError(f"Stored snapshot is not a valid wallet: {e}")

    async def clear(self) -> bool:
        existed = self._document is not None
        self._document = None
        return existed
