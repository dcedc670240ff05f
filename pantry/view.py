from typing import Iterable, List

import pandas as pd

from .errors import SerializationError
from .models import InventoryItem

CSV_COLUMNS = ["Item", "Quantity"]
CSV_FILE_NAME = "pantry_inventory.csv"

# characters that force a CSV field to be quoted
CSV_SPECIAL_CHARS = (",", '"', "\n", "\r")


def filter_items(items: Iterable[InventoryItem], query: str) -> List[InventoryItem]:
    """Items whose name contains ``query``, ignoring case. Order is kept."""
    items = list(items)
    if not query:
        return items
    q = query.lower()
    return [item for item in items if q in item.name.lower()]


def to_frame(items: Iterable[InventoryItem]) -> pd.DataFrame:
    rows = [{"Item": item.name, "Quantity": int(item.quantity)} for item in items]
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def to_csv(items: Iterable[InventoryItem], strict: bool = False) -> str:
    """
    Header ``Item,Quantity`` followed by one row per item, ``\\n``-separated,
    with no trailing newline. Names holding a delimiter, quote or line break
    are quoted the way pandas quotes them; with ``strict=True`` they are
    rejected instead.
    """
    items = list(items)
    if strict:
        bad = [item.name for item in items if any(c in item.name for c in CSV_SPECIAL_CHARS)]
        if bad:
            raise SerializationError("Item names need CSV quoting: " + ", ".join(repr(b) for b in bad))

    text = to_frame(items).to_csv(index=False, lineterminator="\n")
    return text[:-1] if text.endswith("\n") else text
