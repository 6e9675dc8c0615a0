"""
Abstract Snapshot Storage Interface

The wallet is persisted as one snapshot document holding the whole
AppState: loaded wholesale at startup, overwritten wholesale on save.
Defining the backend as an interface allows us to:
1. Keep a JSON file on disk for normal use
2. Use in-memory storage for testing
3. Swap in another backend without touching ledger logic
"""

from abc import ABC, abstractmethod
from typing import Optional

from smart_wallet.models.ledger import AppState


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for snapshot storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def save_snapshot(self, state: AppState) -> bool:
        """
        Overwrite the stored snapshot with this state.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def load_snapshot(self) -> Optional[AppState]:
        """
        Read the stored snapshot.

        Returns:
            The stored state, or None if nothing was saved yet

        Raises:
            StorageError: If the snapshot exists but cannot be read
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Remove the stored snapshot.

        Returns:
            True if something was removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptSnapshotError(StorageError):
    """A stored snapshot exists but does not match the schema."""
    pass


class InvalidImportFormatError(Exception):
    """An import document lacks the fields every snapshot must have."""
    pass
