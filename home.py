import logging

import streamlit as st

from pantry.config import load_settings
from pantry.errors import ConfigError, PantryError
from pantry.logging_config import setup_logging
from pantry.models import normalize_name
from pantry.store import build_store
from pantry.sync import InventorySynchronizer
from pantry.view import CSV_FILE_NAME

logger = logging.getLogger("pantry.page")

# =========================================================
# CONFIG
# =========================================================

SYNC_STATE_KEY = "pantry_sync_v1"
STATUS_STATE_KEY = "pantry_status"

st.set_page_config(page_title="Pantry Inventory", layout="centered")


@st.cache_resource
def get_settings():
    return load_settings()


@st.cache_resource
def get_store():
    return build_store(get_settings())


# =========================================================
# STATE
# =========================================================

def _set_status(kind: str, message: str):
    st.session_state[STATUS_STATE_KEY] = (kind, message)


def _run(action, *args, success=None) -> bool:
    """Run a synchronizer call; failures become a status message, the list stays as it was."""
    try:
        action(*args)
    except PantryError as e:
        logger.warning("%s failed: %s", getattr(action, "__name__", "action"), e)
        _set_status("error", str(e))
        return False
    if success:
        _set_status("success", success)
    return True


def init_sync() -> InventorySynchronizer:
    if SYNC_STATE_KEY not in st.session_state:
        sync = InventorySynchronizer.from_settings(get_store(), get_settings())
        st.session_state[SYNC_STATE_KEY] = sync
        _run(sync.refresh)
    return st.session_state[SYNC_STATE_KEY]


def show_status():
    status = st.session_state.pop(STATUS_STATE_KEY, None)
    if not status:
        return
    kind, message = status
    if kind == "error":
        st.error(message)
    else:
        st.success(message)


# =========================================================
# UI
# =========================================================

try:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file or None)
    sync = init_sync()
except ConfigError as e:
    st.error(f"Configuration error: {e}")
    st.stop()

st.title("Pantry Inventory System")

top_left, top_right = st.columns([3, 1])
with top_left:
    search = st.text_input("Search Pantry", placeholder="Type to filter…").lower()
with top_right:
    if st.button("🔄 Refresh", use_container_width=True):
        _run(sync.refresh, success="Reloaded from the store.")

show_status()

with st.expander("Add New Item(s)"):
    with st.form("update_quantity_form", clear_on_submit=True):
        st.markdown("#### Update Item Quantity")
        item_name = st.text_input("Item name*", key="update_item_name", placeholder="Enter item name...")
        quantity = st.number_input("Quantity*", key="update_item_quantity", min_value=0, value=1, step=1)

        submitted = st.form_submit_button("Update", type="primary", use_container_width=True)

        if submitted:
            if not item_name.strip():
                st.error("Item name is required.")
            elif _run(sync.set_quantity, item_name.strip(), quantity):
                st.success(f"Set {normalize_name(item_name.strip())} to {int(quantity)}.")
            else:
                show_status()

st.download_button(
    "Download CSV",
    data=sync.to_csv().encode("utf-8"),
    file_name=CSV_FILE_NAME,
    mime="text/csv",
    use_container_width=True,
)

st.markdown("---")

all_items = sync.items
shown = sync.filter(search)

if not all_items:
    st.info("Pantry is empty. Add your first item above.")
else:
    st.caption(f"Showing {len(shown):,} of {len(all_items):,} items")

    for item in shown:
        c_name, c_qty, c_add, c_remove = st.columns([4, 1, 1, 1])
        c_name.text(item.name)
        c_qty.text(str(item.quantity))
        c_add.button("➕", key=f"add_{item.name}", help="Add one", on_click=_run, args=(sync.increment, item.name))
        c_remove.button("➖", key=f"remove_{item.name}", help="Remove one", on_click=_run, args=(sync.decrement, item.name))
