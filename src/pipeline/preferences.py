"""JSON-file adapter for InsightPreferences.

The pipeline only ever receives a loaded InsightPreferences value; this
module is the caller-side persistence for it.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from insight_models import InsightPreferences

log = logging.getLogger("insight_preferences")


def load_preferences(path: Optional[str]) -> InsightPreferences:
    """Read preferences from ``path``; defaults when unset or missing."""
    if not path or not os.path.exists(path):
        log.info("No insight preferences at %s; using defaults", path or "(unset)")
        return InsightPreferences()
    with open(path, "r", encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as e:
            raise ValueError(f"Malformed insight preferences file {path}: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError(f"Insight preferences file {path} must hold a JSON object")
    return InsightPreferences.from_dict(payload)


def save_preferences(preferences: InsightPreferences, path: str) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(preferences.to_dict(), fh, indent=2, ensure_ascii=False)
    log.info("Insight preferences written to %s", path)
