from __future__ import annotations

import copy
import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict

from plasticmart.config import DEFAULT_SETTINGS, SETTINGS_FILENAME, resolve_data_dir

logger = logging.getLogger(__name__)


def _merge(defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(defaults)
    for k, v in loaded.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


class SettingsService:
    """data/settings.json with defaults for every missing key."""

    def __init__(self, data_dir: os.PathLike | str | None = None) -> None:
        self.path: Path = resolve_data_dir(data_dir) / SETTINGS_FILENAME

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("Unreadable settings file %s (%s), using defaults", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def all(self) -> Dict[str, Any]:
        return _merge(DEFAULT_SETTINGS, self._load())

    def get(self, key: str, default: Any = None) -> Any:
        return self.all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)
        logger.info("Setting %s updated", key)

    # ---------- Bundle rate ---------- #

    def get_default_bundle_rate(self) -> float:
        raw = self.get("default_bundle_rate", 0)
        try:
            rate = float(raw)
        except (TypeError, ValueError):
            logger.warning("Invalid default_bundle_rate %r in settings, using 0", raw)
            return 0.0
        return rate if math.isfinite(rate) and rate >= 0 else 0.0

    def set_default_bundle_rate(self, value: float) -> None:
        rate = float(value)
        if not math.isfinite(rate) or rate < 0:
            raise ValueError("Bundle rate must be a positive number")
        self.set("default_bundle_rate", rate)
