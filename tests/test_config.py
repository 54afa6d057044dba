import pytest

from autoparts_assistant.config import (
    DEFAULT_WHATSAPP_NUMBER,
    INVENTORY_LOCAL,
    INVENTORY_REMOTE,
    Settings,
    load_settings,
)

ENV_KEYS = [
    "GEMINI_API_KEY",
    "API_KEY",
    "GEMINI_MODEL",
    "INVENTORY_MODE",
    "INVENTORY_URL",
    "WHATSAPP_NUMBER",
    "CATALOG_PATH",
    "SEMANTIC_SEARCH",
    "REQUEST_TIMEOUT",
    "HISTORY_WINDOW",
    "SUMMARY_PREVIEW",
    "MIN_SEARCH_DELAY",
    "MAX_SESSIONS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.inventory_mode == INVENTORY_LOCAL
    assert settings.whatsapp_number == DEFAULT_WHATSAPP_NUMBER
    assert settings.request_timeout == 30.0
    assert settings.history_window == 10
    assert not settings.has_credentials
    assert not settings.semantic_search
    assert settings.catalog_path.name == "catalog.json"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("API_KEY", "legacy-key")
    monkeypatch.setenv("INVENTORY_MODE", "Remote")
    monkeypatch.setenv("INVENTORY_URL", "https://inventory.example.com")
    monkeypatch.setenv("SEMANTIC_SEARCH", "yes")
    monkeypatch.setenv("REQUEST_TIMEOUT", "12.5")
    monkeypatch.setenv("CATALOG_PATH", str(tmp_path / "items.json"))
    settings = load_settings()
    assert settings.gemini_api_key == "legacy-key"
    assert settings.has_credentials
    assert settings.inventory_mode == INVENTORY_REMOTE
    assert settings.use_remote_inventory
    assert settings.semantic_search
    assert settings.request_timeout == 12.5
    assert settings.catalog_path == tmp_path / "items.json"


def test_gemini_key_wins_over_legacy(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "new")
    monkeypatch.setenv("API_KEY", "old")
    assert load_settings().gemini_api_key == "new"


def test_invalid_inventory_mode(monkeypatch):
    monkeypatch.setenv("INVENTORY_MODE", "ftp")
    with pytest.raises(ValueError):
        load_settings()


def test_invalid_number(monkeypatch):
    monkeypatch.setenv("HISTORY_WINDOW", "ten")
    with pytest.raises(ValueError):
        load_settings()


def test_remote_without_url_is_not_remote():
    assert not Settings(inventory_mode=INVENTORY_REMOTE).use_remote_inventory
