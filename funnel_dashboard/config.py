from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, TypeVar


SCAN_MODES = ("stride", "adaptive")

_N = TypeVar("_N", int, float)


class ConfigurationError(RuntimeError):
    """Missing credential, unknown month or an invalid setting."""


def _env(name: str, default: str = "") -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default.strip()
    value = raw.strip()
    placeholder = f"{name}="
    unquoted = value.strip("'\"").strip()
    if unquoted.lower() == placeholder.lower():
        return default.strip()
    return value if value else default.strip()


def _env_number(name: str, default: _N, cast: Callable[[str], _N]) -> _N:
    raw = _env(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'.") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_map_str(name: str, default: str = "") -> dict[str, str]:
    raw = _env(name, default)
    out: dict[str, str] = {}
    for part in raw.split(","):
        chunk = part.strip()
        if not chunk or ":" not in chunk:
            continue
        key_raw, value_raw = chunk.split(":", 1)
        key = key_raw.strip().lower()
        value = value_raw.strip()
        if not key or not value:
            continue
        out[key] = value
    return out


@dataclass(frozen=True)
class DashboardConfig:
    sheets_api_key: str
    spreadsheet_id: str
    service_account_file: str
    sheets_api_base_url: str
    sheets_timeout_sec: float
    sheet_last_column: str
    sheet_max_rows: int
    sheet_tab_map: dict[str, str]

    scan_mode: str
    schema_header_matching: bool

    cache_enabled: bool
    cache_dir: str
    cache_ttl_sec: int

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        return cls(
            sheets_api_key=_env("GOOGLE_SHEETS_API_KEY"),
            spreadsheet_id=_env("GOOGLE_SPREADSHEET_ID"),
            service_account_file=_env("GOOGLE_SERVICE_ACCOUNT_FILE"),
            sheets_api_base_url=_env(
                "SHEETS_API_BASE_URL", "https://sheets.googleapis.com/v4/spreadsheets"
            ).rstrip("/"),
            sheets_timeout_sec=max(1.0, _env_number("SHEETS_TIMEOUT_SEC", 30.0, float)),
            sheet_last_column=_env("SHEET_LAST_COLUMN", "T").upper(),
            sheet_max_rows=max(2, _env_number("SHEET_MAX_ROWS", 200, int)),
            sheet_tab_map=_env_map_str("SHEET_TAB_MAP"),
            scan_mode=_env("SCAN_MODE", "stride").lower(),
            schema_header_matching=_env_bool("SCHEMA_HEADER_MATCHING", False),
            cache_enabled=_env_bool("CACHE_ENABLED", True),
            cache_dir=_env("CACHE_DIR", ".cache/funnel_dashboard"),
            cache_ttl_sec=max(0, _env_number("CACHE_TTL_SEC", 300, int)),
        )

    @property
    def uses_service_account(self) -> bool:
        return bool(self.service_account_file)

    def validate(self) -> None:
        """Fail fast on settings that must never be defaulted."""
        if not self.sheets_api_key and not self.uses_service_account:
            raise ConfigurationError(
                "Google Sheets API key missing. Set GOOGLE_SHEETS_API_KEY "
                "(or GOOGLE_SERVICE_ACCOUNT_FILE) in the environment or .env."
            )
        if not self.spreadsheet_id:
            raise ConfigurationError(
                "Spreadsheet ID missing. Set GOOGLE_SPREADSHEET_ID in the environment or .env."
            )
        if self.scan_mode not in SCAN_MODES:
            raise ConfigurationError(
                f"Unknown SCAN_MODE '{self.scan_mode}'. Use one of: {', '.join(SCAN_MODES)}."
            )
        if not self.sheet_last_column.isalpha():
            raise ConfigurationError(
                f"SHEET_LAST_COLUMN must be a column letter, got '{self.sheet_last_column}'."
            )
