import pytest

from funnel_dashboard.config import ConfigurationError, DashboardConfig

ENV_NAMES = (
    "GOOGLE_SHEETS_API_KEY",
    "GOOGLE_SPREADSHEET_ID",
    "GOOGLE_SERVICE_ACCOUNT_FILE",
    "SHEETS_API_BASE_URL",
    "SHEETS_TIMEOUT_SEC",
    "SHEET_LAST_COLUMN",
    "SHEET_MAX_ROWS",
    "SHEET_TAB_MAP",
    "SCAN_MODE",
    "SCHEMA_HEADER_MATCHING",
    "CACHE_ENABLED",
    "CACHE_DIR",
    "CACHE_TTL_SEC",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    config = DashboardConfig.from_env()
    assert config.sheets_api_base_url == "https://sheets.googleapis.com/v4/spreadsheets"
    assert config.sheet_last_column == "T"
    assert config.sheet_max_rows == 200
    assert config.scan_mode == "stride"
    assert config.schema_header_matching is False
    assert config.cache_enabled is True
    assert config.cache_ttl_sec == 300
    assert config.sheet_tab_map == {}


def test_placeholder_value_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("CACHE_DIR", "CACHE_DIR=")
    config = DashboardConfig.from_env()
    assert config.cache_dir == ".cache/funnel_dashboard"


def test_tab_map_from_env(monkeypatch):
    monkeypatch.setenv("SHEET_TAB_MAP", "OUT:Outubro 2025, nov : Novembro 2025,broken")
    config = DashboardConfig.from_env()
    assert config.sheet_tab_map == {"out": "Outubro 2025", "nov": "Novembro 2025"}


def test_validate_requires_api_key(monkeypatch):
    monkeypatch.setenv("GOOGLE_SPREADSHEET_ID", "sheet")
    with pytest.raises(ConfigurationError) as error:
        DashboardConfig.from_env().validate()
    assert "GOOGLE_SHEETS_API_KEY" in str(error.value)


def test_validate_requires_spreadsheet_id(monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEETS_API_KEY", "key")
    with pytest.raises(ConfigurationError) as error:
        DashboardConfig.from_env().validate()
    assert "GOOGLE_SPREADSHEET_ID" in str(error.value)


def test_service_account_replaces_api_key(monkeypatch):
    monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_FILE", "/secrets/sa.json")
    monkeypatch.setenv("GOOGLE_SPREADSHEET_ID", "sheet")
    config = DashboardConfig.from_env()
    config.validate()
    assert config.uses_service_account


def test_validate_rejects_unknown_scan_mode(monkeypatch):
    monkeypatch.setenv("GOOGLE_SHEETS_API_KEY", "key")
    monkeypatch.setenv("GOOGLE_SPREADSHEET_ID", "sheet")
    monkeypatch.setenv("SCAN_MODE", "greedy")
    with pytest.raises(ConfigurationError):
        DashboardConfig.from_env().validate()


def test_numeric_settings_are_clamped(monkeypatch):
    monkeypatch.setenv("CACHE_TTL_SEC", "-5")
    monkeypatch.setenv("SHEET_MAX_ROWS", "0")
    config = DashboardConfig.from_env()
    assert config.cache_ttl_sec == 0
    assert config.sheet_max_rows == 2


@pytest.mark.parametrize("name", ["SHEETS_TIMEOUT_SEC", "SHEET_MAX_ROWS", "CACHE_TTL_SEC"])
def test_malformed_number_names_the_variable(monkeypatch, name):
    monkeypatch.setenv(name, "cinco")
    with pytest.raises(ConfigurationError) as error:
        DashboardConfig.from_env()
    assert name in str(error.value)
    assert "cinco" in str(error.value)
