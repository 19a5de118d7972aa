from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from selfheal.config.schema import SuiteConfig

CONFIG_PATH_ENV = "SELFHEAL_CONFIG"

# Environment variables that override keys of the "healing" section.
_HEALING_ENV_OVERRIDES = {
    "HEAL_SERVICE_URL": "service_url",
    "HEAL_ENABLED": "enabled",
    "HEAL_CONFIDENCE_THRESHOLD": "confidence_threshold",
    "HEAL_WAIT_SECONDS": "wait_seconds",
}


class ConfigLoader:
    """Reads the JSON suite file and layers environment overrides on top."""

    @staticmethod
    def load(path: str | Path | None = None) -> SuiteConfig:
        payload: dict[str, Any] = {}
        source = path or os.getenv(CONFIG_PATH_ENV)
        if source:
            with Path(source).open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        healing = dict(payload.get("healing") or {})
        for variable, key in _HEALING_ENV_OVERRIDES.items():
            value = os.getenv(variable)
            if value:
                healing[key] = value
        if healing:
            payload["healing"] = healing
        return SuiteConfig.model_validate(payload)
