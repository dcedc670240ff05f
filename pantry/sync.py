"""
Inventory synchronizer: the in-memory item list and the mutations that keep
it in step with the store.

Every mutation is a read followed by a write on a single key. Writes that
depend on the value read (increment, decrement) are compare-and-set; when
another writer got there first the read/write pair is retried, up to
``max_attempts`` times. A failed mutation raises and leaves ``items``
exactly as it was; only a successful one reconciles the list, either by a
full ``refresh()`` or, in ``incremental`` mode, by patching the one entry it
changed.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .errors import AlreadyExistsError, ConflictError, NotFoundError
from .models import InventoryItem, check_name, normalize_name, parse_quantity, record_quantity
from .store import StoreClient
from .view import filter_items, to_csv

logger = logging.getLogger(__name__)

RACE_ERRORS = (ConflictError, AlreadyExistsError, NotFoundError)


class InventorySynchronizer:
    def __init__(
        self,
        store: StoreClient,
        collection: str = "inventory",
        refresh_mode: str = "full",
        prune_zero: bool = False,
        max_attempts: int = 5,
    ):
        self.store = store
        self.collection = collection
        self.refresh_mode = refresh_mode
        self.prune_zero = prune_zero
        self.max_attempts = max_attempts
        self._items: List[InventoryItem] = []

    @classmethod
    def from_settings(cls, store: StoreClient, settings) -> "InventorySynchronizer":
        return cls(
            store,
            collection=settings.collection,
            refresh_mode=settings.refresh_mode,
            prune_zero=settings.prune_zero,
            max_attempts=settings.max_attempts,
        )

    @property
    def items(self) -> List[InventoryItem]:
        return list(self._items)

    def refresh(self) -> List[InventoryItem]:
        records = self.store.list_all(self.collection)
        items = {}
        for key, fields in records:
            if key in items:
                logger.warning("Store returned %r twice, keeping the first record", key)
                continue
            items[key] = InventoryItem(name=key, quantity=record_quantity(fields))
        self._items = list(items.values())
        logger.debug("Loaded %d item(s) from %r", len(self._items), self.collection)
        return self.items

    def filter(self, query: str) -> List[InventoryItem]:
        return filter_items(self._items, query)

    def to_csv(self, strict: bool = False) -> str:
        return to_csv(self._items, strict=strict)

    # ---------------------------
    # mutations
    # ---------------------------

    def increment(self, name: str) -> int:
        key = normalize_name(name)
        quantity = self._with_retries(key, self._increment_once)
        logger.info("Incremented %r to %d", key, quantity)
        self._reconcile(key, quantity)
        return quantity

    def decrement(self, name: str) -> Optional[int]:
        """Returns the new quantity, or None once the record is gone."""
        key = check_name(name)
        quantity = self._with_retries(key, self._decrement_once)
        if quantity is None:
            logger.info("Removed %r", key)
        else:
            logger.info("Decremented %r to %d", key, quantity)
        self._reconcile(key, quantity)
        return quantity

    def set_quantity(self, name: str, value) -> Optional[int]:
        quantity = parse_quantity(value)
        key = normalize_name(name)

        if quantity == 0 and self.prune_zero:
            self.store.delete(self.collection, key)
            logger.info("Set %r to 0, record removed", key)
            self._reconcile(key, None)
            return None

        self._with_retries(key, lambda k: self._set_once(k, quantity))
        logger.info("Set %r to %d", key, quantity)
        self._reconcile(key, quantity)
        return quantity

    def _increment_once(self, key: str) -> int:
        fields = self.store.get(self.collection, key)
        if fields is None:
            self.store.create(self.collection, key, {"quantity": 1})
            return 1

        current = record_quantity(fields)
        self.store.update(self.collection, key, {"quantity": current + 1}, expected={"quantity": current})
        return current + 1

    def _decrement_once(self, key: str) -> Optional[int]:
        fields = self.store.get(self.collection, key)
        if fields is None:
            self.store.delete(self.collection, key)
            return None

        current = record_quantity(fields)
        if current > 1:
            self.store.update(self.collection, key, {"quantity": current - 1}, expected={"quantity": current})
            return current - 1

        self.store.delete(self.collection, key, expected={"quantity": current})
        return None

    def _set_once(self, key: str, quantity: int) -> int:
        if self.store.get(self.collection, key) is None:
            self.store.create(self.collection, key, {"quantity": quantity})
        else:
            self.store.update(self.collection, key, {"quantity": quantity})
        return quantity

    def _with_retries(self, key: str, op: Callable[[str], Optional[int]]) -> Optional[int]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return op(key)
            except RACE_ERRORS as e:
                logger.warning("Write to %r raced another writer (attempt %d/%d): %s", key, attempt, self.max_attempts, e)
        raise ConflictError(f"Gave up updating {key!r} after {self.max_attempts} attempts")

    # ---------------------------
    # local state
    # ---------------------------

    def _reconcile(self, key: str, quantity: Optional[int]) -> None:
        if self.refresh_mode == "incremental":
            self._apply(key, quantity)
        else:
            self.refresh()

    def _apply(self, key: str, quantity: Optional[int]) -> None:
        items = list(self._items)
        for idx, item in enumerate(items):
            if item.name == key:
                if quantity is None:
                    del items[idx]
                else:
                    items[idx] = InventoryItem(name=key, quantity=quantity)
                break
        else:
            if quantity is not None:
                items.append(InventoryItem(name=key, quantity=quantity))
        self._items = items
