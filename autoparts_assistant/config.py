from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

INVENTORY_LOCAL = "local"
INVENTORY_REMOTE = "remote"
DEFAULT_WHATSAPP_NUMBER = "5490000000000"

_TRUE_VALUES = {"1", "true", "yes", "on", "si"}


@dataclass(frozen=True)
class Settings:
    """Configuration container for credentials, inventory mode, and runtime limits."""
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    inventory_mode: str = INVENTORY_LOCAL
    inventory_url: str = ""
    whatsapp_number: str = DEFAULT_WHATSAPP_NUMBER
    catalog_path: Path = BASE_DIR / "data" / "catalog.json"
    prompts_dir: Path = BASE_DIR / "prompts"
    semantic_search: bool = False
    request_timeout: float = 30.0
    history_window: int = 10
    summary_preview: int = 5
    min_search_delay: float = 0.6
    max_sessions: int = 50

    @property
    def has_credentials(self) -> bool:
        return bool(self.gemini_api_key.strip())

    @property
    def use_remote_inventory(self) -> bool:
        return self.inventory_mode == INVENTORY_REMOTE and bool(self.inventory_url.strip())


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid numeric env values raise ValueError; an unknown
        INVENTORY_MODE raises ValueError.
    """
    # Resolve catalog path, then build Settings.
    catalog_path = os.getenv("CATALOG_PATH")
    if catalog_path:
        catalog_file = Path(catalog_path)
    else:
        catalog_file = (BASE_DIR / "data" / "catalog.json").resolve()

    inventory_mode = os.getenv("INVENTORY_MODE", INVENTORY_LOCAL).strip().lower()
    if inventory_mode not in (INVENTORY_LOCAL, INVENTORY_REMOTE):
        raise ValueError(f"INVENTORY_MODE must be '{INVENTORY_LOCAL}' or '{INVENTORY_REMOTE}'")

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        inventory_mode=inventory_mode,
        inventory_url=os.getenv("INVENTORY_URL", ""),
        whatsapp_number=os.getenv("WHATSAPP_NUMBER", DEFAULT_WHATSAPP_NUMBER),
        catalog_path=catalog_file,
        prompts_dir=(BASE_DIR / "prompts").resolve(),
        semantic_search=os.getenv("SEMANTIC_SEARCH", "false").strip().lower() in _TRUE_VALUES,
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
        history_window=int(os.getenv("HISTORY_WINDOW", "10")),
        summary_preview=int(os.getenv("SUMMARY_PREVIEW", "5")),
        min_search_delay=float(os.getenv("MIN_SEARCH_DELAY", "0.6")),
        max_sessions=int(os.getenv("MAX_SESSIONS", "50")),
    )
