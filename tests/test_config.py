import json

import pytest

from pantry.config import load_settings
from pantry.errors import ConfigError
from pantry.store import MemoryStore, build_store, get_gspread_client

SA_INFO = {"type": "service_account", "client_email": "bot@example.iam.gserviceaccount.com"}


def test_memory_backend_needs_nothing_else():
    s = load_settings({"PANTRY_STORE": "memory"})
    assert s.store_backend == "memory"
    assert s.collection == "inventory"
    assert s.refresh_mode == "full"
    assert s.prune_zero is False
    assert s.max_attempts == 5
    assert s.log_level == "INFO"


def test_sheets_is_the_default_and_fails_fast_without_credentials():
    with pytest.raises(ConfigError) as exc:
        load_settings({})
    assert "SPREADSHEET_ID" in str(exc.value)
    assert "SERVICE_ACCOUNT_JSON_PATH" in str(exc.value)


def test_sheets_with_inline_service_account():
    s = load_settings({"SPREADSHEET_ID": "abc", "GCP_SERVICE_ACCOUNT": json.dumps(SA_INFO)})
    assert s.store_backend == "sheets"
    assert s.spreadsheet_id == "abc"
    assert s.service_account_info == SA_INFO


def test_sheets_with_service_account_file(tmp_path):
    path = tmp_path / "sa.json"
    path.write_text(json.dumps(SA_INFO), encoding="utf-8")
    s = load_settings({"SPREADSHEET_ID": "abc", "SERVICE_ACCOUNT_JSON_PATH": str(path)})
    assert s.service_account_info == SA_INFO


def test_missing_service_account_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings({"SPREADSHEET_ID": "abc", "SERVICE_ACCOUNT_JSON_PATH": str(tmp_path / "nope.json")})


def test_missing_spreadsheet_id_only():
    with pytest.raises(ConfigError) as exc:
        load_settings({"GCP_SERVICE_ACCOUNT": json.dumps(SA_INFO)})
    assert "SPREADSHEET_ID" in str(exc.value)
    assert "GCP_SERVICE_ACCOUNT" not in str(exc.value)


def test_inline_service_account_must_be_json():
    with pytest.raises(ConfigError, match="GCP_SERVICE_ACCOUNT"):
        load_settings({"SPREADSHEET_ID": "abc", "GCP_SERVICE_ACCOUNT": "{not json"})


@pytest.mark.parametrize(
    "env",
    [
        {"PANTRY_STORE": "firestore"},
        {"PANTRY_STORE": "memory", "PANTRY_REFRESH_MODE": "sometimes"},
        {"PANTRY_STORE": "memory", "PANTRY_PRUNE_ZERO": "maybe"},
        {"PANTRY_STORE": "memory", "PANTRY_MAX_ATTEMPTS": "0"},
        {"PANTRY_STORE": "memory", "PANTRY_MAX_ATTEMPTS": "lots"},
        {"PANTRY_STORE": "memory", "SHEETS_BACKOFF_SECONDS": "-1"},
        {"PANTRY_STORE": "memory", "INVENTORY_COLLECTION": "   "},
    ],
)
def test_bad_values_fail_fast(env):
    with pytest.raises(ConfigError):
        load_settings(env)


def test_options_are_parsed():
    s = load_settings({
        "PANTRY_STORE": "Memory",
        "PANTRY_REFRESH_MODE": "INCREMENTAL",
        "PANTRY_PRUNE_ZERO": "yes",
        "SHEETS_MAX_RETRIES": "2",
        "SHEETS_BACKOFF_SECONDS": "0.1",
        "LOG_LEVEL": "debug",
    })
    assert s.refresh_mode == "incremental"
    assert s.prune_zero is True
    assert s.sheets_max_retries == 2
    assert s.sheets_backoff_seconds == 0.1
    assert s.log_level == "DEBUG"


def test_build_store_memory():
    assert isinstance(build_store(load_settings({"PANTRY_STORE": "memory"})), MemoryStore)


def test_bad_service_account_info_is_a_config_error():
    with pytest.raises(ConfigError):
        get_gspread_client({"type": "service_account"})


@pytest.mark.parametrize("level", ["verbose", "trace", "10"])
def test_unknown_log_level_fails_fast(level):
    with pytest.raises(ConfigError, match="LOG_LEVEL"):
        load_settings({"PANTRY_STORE": "memory", "LOG_LEVEL": level})


def test_log_file_is_optional():
    assert load_settings({"PANTRY_STORE": "memory"}).log_file == ""
    s = load_settings({"PANTRY_STORE": "memory", "LOG_FILE": " logs/pantry.log "})
    assert s.log_file == "logs/pantry.log"
