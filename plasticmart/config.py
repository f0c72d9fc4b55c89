from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict

# --- Base paths ---
ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = Path(os.environ.get("PLASTICMART_DATA_DIR") or ROOT_DIR / "data")
SETTINGS_FILENAME = "settings.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "default_bundle_rate": 0.0,
    "currency": "INR",
    "locale": "en-IN",
    "backup": {"enabled": True, "keep": 5},
}


def resolve_data_dir(data_dir: os.PathLike | str | None = None) -> Path:
    base = Path(data_dir) if data_dir else DATA_DIR
    base.mkdir(parents=True, exist_ok=True)
    return base
