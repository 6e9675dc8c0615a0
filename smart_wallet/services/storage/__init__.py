"""
Storage Services Package

Provides the snapshot storage interface, its implementations and the
persistence gateway the wallet talks to.
"""

from smart_wallet.services.storage.interface import (
    CorruptSnapshotError,
    InvalidImportFormatError,
    SnapshotStorageInterface,
    StorageError,
)
from smart_wallet.services.storage.json_file import JsonFileSnapshotStorage
from smart_wallet.services.storage.memory import InMemorySnapshotStorage
from smart_wallet.services.storage.gateway import (
    DebouncedSnapshotWriter,
    PersistenceGateway,
)

__all__ = [
    # Interfaces
    "SnapshotStorageInterface",
    # Exceptions
    "CorruptSnapshotError",
    "InvalidImportFormatError",
    "StorageError",
    # Implementations
    "InMemorySnapshotStorage",
    "JsonFileSnapshotStorage",
    # Gateway
    "DebouncedSnapshotWriter",
    "PersistenceGateway",
]
