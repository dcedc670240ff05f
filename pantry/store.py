"""
Store clients: a collection of key -> record mappings in a hosted store.

``SheetsStore`` keeps each collection in a Google Sheets worksheet (header
row ``name, quantity``, keys in column A). ``MemoryStore`` keeps them in a
dict and is used for local runs and tests.

``update`` and ``delete`` take an optional ``expected`` mapping: when given,
the write only happens if the stored record still matches it, otherwise
``ConflictError`` is raised. Both stores hold a lock across the check and
the write.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import APIError, GSpreadException, WorksheetNotFound

from .errors import (
    AlreadyExistsError,
    ConfigError,
    ConflictError,
    ConnectivityError,
    NotFoundError,
    StoreError,
)
from .models import record_quantity

logger = logging.getLogger(__name__)

Record = Dict[str, object]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

DEFAULT_HEADERS = ["name", "quantity"]


def _fields_match(current: Record, expected: Record) -> bool:
    for k, v in expected.items():
        if k == "quantity":
            if record_quantity(current) != v:
                return False
        elif current.get(k) != v:
            return False
    return True


class StoreClient(ABC):
    @abstractmethod
    def list_all(self, collection: str) -> List[Tuple[str, Record]]: ...

    @abstractmethod
    def get(self, collection: str, key: str) -> Optional[Record]: ...

    @abstractmethod
    def create(self, collection: str, key: str, fields: Record) -> None: ...

    @abstractmethod
    def update(self, collection: str, key: str, fields: Record, expected: Optional[Record] = None) -> None: ...

    @abstractmethod
    def delete(self, collection: str, key: str, expected: Optional[Record] = None) -> None: ...


# =========================================================
# IN-MEMORY
# =========================================================

class MemoryStore(StoreClient):
    def __init__(self, data: Optional[Dict[str, Dict[str, Record]]] = None):
        self._collections: Dict[str, Dict[str, Record]] = copy.deepcopy(data) if data else {}
        self._lock = threading.Lock()

    def _coll(self, collection: str) -> Dict[str, Record]:
        return self._collections.setdefault(collection, {})

    def list_all(self, collection):
        with self._lock:
            return [(k, dict(v)) for k, v in self._coll(collection).items()]

    def get(self, collection, key):
        with self._lock:
            rec = self._coll(collection).get(key)
            return dict(rec) if rec is not None else None

    def create(self, collection, key, fields):
        with self._lock:
            coll = self._coll(collection)
            if key in coll:
                raise AlreadyExistsError(f"{collection}/{key} already exists")
            coll[key] = dict(fields)

    def update(self, collection, key, fields, expected=None):
        with self._lock:
            coll = self._coll(collection)
            if key not in coll:
                raise NotFoundError(f"{collection}/{key} does not exist")
            if expected is not None and not _fields_match(coll[key], expected):
                raise ConflictError(f"{collection}/{key} changed since it was read")
            coll[key].update(fields)

    def delete(self, collection, key, expected=None):
        with self._lock:
            coll = self._coll(collection)
            if key not in coll:
                return
            if expected is not None and not _fields_match(coll[key], expected):
                raise ConflictError(f"{collection}/{key} changed since it was read")
            del coll[key]


# =========================================================
# GOOGLE SHEETS
# =========================================================

def get_gspread_client(sa_info: dict) -> gspread.Client:
    try:
        creds = Credentials.from_service_account_info(sa_info, scopes=SCOPES)
    except (ValueError, KeyError, GoogleAuthError) as e:
        raise ConfigError(f"Failed to initialize Google Sheets credentials: {e}") from e
    return gspread.authorize(creds)


def _is_quota_error(e: APIError) -> bool:
    msg = str(e)
    return getattr(e, "code", None) == 429 or "429" in msg or "Quota exceeded" in msg


class SheetsStore(StoreClient):
    def __init__(
        self,
        client: gspread.Client,
        spreadsheet_id: str,
        max_retries: int = 6,
        backoff_seconds: float = 0.8,
        headers: Optional[List[str]] = None,
    ):
        self._client = client
        self._spreadsheet_id = spreadsheet_id
        self._sh = None
        self._worksheets: Dict[str, Tuple[object, List[str]]] = {}
        self._lock = threading.RLock()
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.headers = list(headers or DEFAULT_HEADERS)

    def _call(self, fn, *args, **kwargs):
        for attempt in range(1, self.max_retries + 1):
            try:
                return fn(*args, **kwargs)
            except WorksheetNotFound:
                raise
            except APIError as e:
                if not _is_quota_error(e):
                    raise ConnectivityError(f"Google Sheets API error: {e}") from e
                if attempt < self.max_retries:
                    delay = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.warning("Sheets quota hit, retrying in %.1fs (attempt %d/%d)", delay, attempt, self.max_retries)
                    time.sleep(delay)
            except (GSpreadException, requests.RequestException, GoogleAuthError) as e:
                raise ConnectivityError(f"Google Sheets request failed: {e}") from e
        raise ConnectivityError("Google Sheets API quota exceeded (retries exhausted).")

    def _spreadsheet(self):
        if self._sh is None:
            self._sh = self._call(self._client.open_by_key, self._spreadsheet_id)
        return self._sh

    def ensure_headers(self, ws) -> List[str]:
        """
        If sheet is empty, write header row.
        If header exists but missing columns, extend it (append missing at end).
        """
        first_row = self._call(ws.row_values, 1)
        if not first_row:
            self._call(ws.append_row, self.headers, value_input_option="RAW")
            return list(self.headers)

        missing = [h for h in self.headers if h not in first_row]
        if missing:
            new_headers = first_row + missing
            self._call(ws.update, range_name="1:1", values=[new_headers])
            return new_headers

        return first_row

    def _ws(self, collection: str):
        cached = self._worksheets.get(collection)
        if cached is not None:
            return cached

        sh = self._spreadsheet()
        try:
            ws = self._call(sh.worksheet, collection)
        except WorksheetNotFound:
            logger.info("Creating worksheet %r", collection)
            ws = self._call(sh.add_worksheet, title=collection, rows=100, cols=len(self.headers))

        headers = self.ensure_headers(ws)
        self._worksheets[collection] = (ws, headers)
        return ws, headers

    def _row_for_key(self, ws, key: str) -> Optional[int]:
        col_a = self._call(ws.col_values, 1)  # includes header
        for idx, val in enumerate(col_a[1:], start=2):
            if val == key:
                return idx
        return None

    @staticmethod
    def _fields(headers: List[str], values: List[str]) -> Record:
        values = list(values) + [""] * (len(headers) - len(values))
        fields: Record = {h: values[i] for i, h in enumerate(headers) if i > 0}
        if "quantity" in fields:
            fields["quantity"] = record_quantity(fields)
        return fields

    def _current(self, ws, headers, row: int) -> Record:
        return self._fields(headers, self._call(ws.row_values, row))

    def list_all(self, collection):
        ws, headers = self._ws(collection)
        rows = self._call(ws.get_all_values)
        out = []
        seen = set()
        for rownum, values in enumerate(rows[1:], start=2):
            if not values or not values[0]:
                continue
            key = str(values[0])
            # writes only ever touch the first row for a key
            if key in seen:
                logger.warning("Ignoring duplicate key %r in %r at row %d", key, collection, rownum)
                continue
            seen.add(key)
            out.append((key, self._fields(headers, values)))
        return out

    def get(self, collection, key):
        ws, headers = self._ws(collection)
        row = self._row_for_key(ws, key)
        if row is None:
            return None
        return self._current(ws, headers, row)

    def create(self, collection, key, fields):
        ws, headers = self._ws(collection)
        with self._lock:
            if self._row_for_key(ws, key) is not None:
                raise AlreadyExistsError(f"{collection}/{key} already exists")
            ordered = [key] + [fields.get(h, "") for h in headers[1:]]
            self._call(ws.append_row, ordered, value_input_option="RAW")

    def update(self, collection, key, fields, expected=None):
        ws, headers = self._ws(collection)
        unknown = [f for f in fields if f not in headers[1:]]
        if unknown:
            raise StoreError(f"Unknown field(s) for {collection}: {', '.join(unknown)}")

        with self._lock:
            row = self._row_for_key(ws, key)
            if row is None:
                raise NotFoundError(f"{collection}/{key} does not exist")
            if expected is not None and not _fields_match(self._current(ws, headers, row), expected):
                raise ConflictError(f"{collection}/{key} changed since it was read")
            for field, value in fields.items():
                self._call(ws.update_cell, row, headers.index(field) + 1, value)

    def delete(self, collection, key, expected=None):
        ws, headers = self._ws(collection)
        with self._lock:
            row = self._row_for_key(ws, key)
            if row is None:
                return
            if expected is not None and not _fields_match(self._current(ws, headers, row), expected):
                raise ConflictError(f"{collection}/{key} changed since it was read")
            self._call(ws.delete_rows, row)


def build_store(settings) -> StoreClient:
    if settings.store_backend == "memory":
        logger.info("Using in-memory store")
        return MemoryStore()

    client = get_gspread_client(settings.service_account_info)
    logger.info("Using Google Sheets store %s", settings.spreadsheet_id)
    return SheetsStore(
        client,
        settings.spreadsheet_id,
        max_retries=settings.sheets_max_retries,
        backoff_seconds=settings.sheets_backoff_seconds,
    )
