"""Services package."""

from smart_wallet.services.storage import (
    CorruptSnapshotError,
    DebouncedSnapshotWriter,
    InMemorySnapshotStorage,
    InvalidImportFormatError,
    JsonFileSnapshotStorage,
    PersistenceGateway,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    "CorruptSnapshotError",
    "DebouncedSnapshotWriter",
    "InMemorySnapshotStorage",
    "InvalidImportFormatError",
    "JsonFileSnapshotStorage",
    "PersistenceGateway",
    "SnapshotStorageInterface",
    "StorageError",
]
