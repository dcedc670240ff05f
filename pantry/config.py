"""
Settings for the pantry tracker.

Everything is read from environment variables once, at start. A ``.env``
file next to the working directory is loaded first, so local runs can keep
their service-account settings there. Missing or malformed values raise
``ConfigError`` immediately instead of surfacing on the first write.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

STORE_BACKENDS = ("sheets", "memory")
REFRESH_MODES = ("full", "incremental")
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    store_backend: str = "sheets"
    spreadsheet_id: str = ""
    service_account_info: Optional[dict] = None
    collection: str = "inventory"
    refresh_mode: str = "full"
    prune_zero: bool = False
    max_attempts: int = 5
    sheets_max_retries: int = 6
    sheets_backoff_seconds: float = 0.8
    log_level: str = "INFO"
    log_file: str = ""


def _get(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def _as_bool(name: str, raw: str) -> bool:
    v = raw.lower()
    if v in TRUE_VALUES:
        return True
    if v in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _as_int(name: str, raw: str, minimum: int) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _as_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must be >= 0, got {value}")
    return value


def _choice(name: str, raw: str, options) -> str:
    v = raw.lower()
    if v not in options:
        raise ConfigError(f"{name} must be one of {', '.join(options)}; got {raw!r}")
    return v


def _service_account_info(env: Mapping[str, str]) -> Optional[dict]:
    """
    Service account JSON comes either inline (GCP_SERVICE_ACCOUNT) or from a
    file (SERVICE_ACCOUNT_JSON_PATH, relative paths resolve from cwd).
    """
    inline = _get(env, "GCP_SERVICE_ACCOUNT")
    if inline:
        try:
            return json.loads(inline)
        except json.JSONDecodeError as e:
            raise ConfigError(f"GCP_SERVICE_ACCOUNT is not valid JSON: {e}") from e

    sa_rel = _get(env, "SERVICE_ACCOUNT_JSON_PATH")
    if not sa_rel:
        return None

    sa_path = Path(sa_rel)
    if not sa_path.is_absolute():
        sa_path = Path.cwd() / sa_rel
    if not sa_path.exists():
        raise ConfigError(f"Service account JSON not found at: {sa_path}")
    try:
        return json.loads(sa_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Service account JSON at {sa_path} is not valid JSON: {e}") from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    if environ is None:
        load_dotenv()
        environ = os.environ

    backend = _choice("PANTRY_STORE", _get(environ, "PANTRY_STORE", "sheets"), STORE_BACKENDS)

    spreadsheet_id = ""
    sa_info = None
    if backend == "sheets":
        spreadsheet_id = _get(environ, "SPREADSHEET_ID")
        sa_info = _service_account_info(environ)

        missing = []
        if not spreadsheet_id:
            missing.append("SPREADSHEET_ID")
        if sa_info is None:
            missing.append("GCP_SERVICE_ACCOUNT or SERVICE_ACCOUNT_JSON_PATH")
        if missing:
            raise ConfigError("Missing required settings: " + ", ".join(missing))

    collection = _get(environ, "INVENTORY_COLLECTION", "inventory")
    if not collection:
        raise ConfigError("INVENTORY_COLLECTION must not be blank")

    return Settings(
        store_backend=backend,
        spreadsheet_id=spreadsheet_id,
        service_account_info=sa_info,
        collection=collection,
        refresh_mode=_choice("PANTRY_REFRESH_MODE", _get(environ, "PANTRY_REFRESH_MODE", "full"), REFRESH_MODES),
        prune_zero=_as_bool("PANTRY_PRUNE_ZERO", _get(environ, "PANTRY_PRUNE_ZERO", "false")),
        max_attempts=_as_int("PANTRY_MAX_ATTEMPTS", _get(environ, "PANTRY_MAX_ATTEMPTS", "5"), minimum=1),
        sheets_max_retries=_as_int("SHEETS_MAX_RETRIES", _get(environ, "SHEETS_MAX_RETRIES", "6"), minimum=1),
        sheets_backoff_seconds=_as_float("SHEETS_BACKOFF_SECONDS", _get(environ, "SHEETS_BACKOFF_SECONDS", "0.8")),
        log_level=_choice("LOG_LEVEL", _get(environ, "LOG_LEVEL", "INFO"), LOG_LEVELS).upper(),
        log_file=_get(environ, "LOG_FILE"),
    )
