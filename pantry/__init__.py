"""Pantry inventory tracker: store access, synchronization and CSV export."""

from .errors import (
    AlreadyExistsError,
    ConfigError,
    ConflictError,
    ConnectivityError,
    NotFoundError,
    PantryError,
    SerializationError,
    StoreError,
    ValidationError,
)
from .models import InventoryItem
from .store import MemoryStore, SheetsStore, StoreClient, build_store
from .sync import InventorySynchronizer
from .view import filter_items, to_csv, to_frame

__all__ = [
    "AlreadyExistsError",
    "ConfigError",
    "ConflictError",
    "ConnectivityError",
    "InventoryItem",
    "InventorySynchronizer",
    "MemoryStore",
    "NotFoundError",
    "PantryError",
    "SerializationError",
    "SheetsStore",
    "StoreClient",
    "StoreError",
    "ValidationError",
    "build_store",
    "filter_items",
    "to_csv",
    "to_frame",
]
