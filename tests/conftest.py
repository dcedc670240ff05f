import pytest
from gspread.exceptions import WorksheetNotFound

from pantry.store import MemoryStore, SheetsStore
from pantry.sync import InventorySynchronizer


# =========================================================
# FAKE GOOGLE SHEETS
# =========================================================

class FakeWorksheet:
    """Enough of gspread.Worksheet for SheetsStore; cells are kept as display strings."""

    def __init__(self, title, rows=None):
        self.title = title
        self.rows = [[str(v) for v in r] for r in (rows or [])]
        self.failures = {}
        self.calls = []

    def _maybe_fail(self, method):
        self.calls.append(method)
        queue = self.failures.get(method)
        if queue:
            raise queue.pop(0)

    def row_values(self, row):
        self._maybe_fail("row_values")
        return list(self.rows[row - 1]) if row <= len(self.rows) else []

    def col_values(self, col):
        self._maybe_fail("col_values")
        return [r[col - 1] if len(r) >= col else "" for r in self.rows]

    def get_all_values(self):
        self._maybe_fail("get_all_values")
        return [list(r) for r in self.rows]

    def append_row(self, values, value_input_option="RAW"):
        self._maybe_fail("append_row")
        self.rows.append([str(v) for v in values])

    def update(self, range_name=None, values=None):
        self._maybe_fail("update")
        assert range_name == "1:1"
        self.rows[0] = [str(v) for v in values[0]]

    def update_cell(self, row, col, value):
        self._maybe_fail("update_cell")
        r = self.rows[row - 1]
        r.extend([""] * (col - len(r)))
        r[col - 1] = str(value)

    def delete_rows(self, start_index):
        self._maybe_fail("delete_rows")
        del self.rows[start_index - 1]


class FakeSpreadsheet:
    def __init__(self, worksheets=None):
        self.worksheets = {ws.title: ws for ws in (worksheets or [])}

    def worksheet(self, title):
        if title not in self.worksheets:
            raise WorksheetNotFound(title)
        return self.worksheets[title]

    def add_worksheet(self, title, rows, cols):
        ws = FakeWorksheet(title)
        self.worksheets[title] = ws
        return ws


class FakeClient:
    def __init__(self, spreadsheet):
        self.spreadsheet = spreadsheet
        self.opened = []

    def open_by_key(self, key):
        self.opened.append(key)
        return self.spreadsheet


class FakeResponse:
    def __init__(self, code, message):
        self.status_code = code
        self.text = message
        self._code = code
        self._message = message

    def json(self):
        return {"error": {"code": self._code, "message": self._message, "status": "ERROR"}}


# =========================================================
# FIXTURES
# =========================================================

@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def sync(memory_store):
    return InventorySynchronizer(memory_store)


@pytest.fixture
def worksheet():
    return FakeWorksheet("inventory", rows=[["name", "quantity"], ["Apple", "3"], ["Bread", "1"]])


@pytest.fixture
def spreadsheet(worksheet):
    return FakeSpreadsheet([worksheet])


@pytest.fixture
def sheets_store(spreadsheet):
    return SheetsStore(FakeClient(spreadsheet), "sheet-id", max_retries=3, backoff_seconds=0)
