"""User preferences persisted as JSON in the application home."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from . import config

LOGGER = logging.getLogger(__name__)


@dataclass
class Preferences:
    """Settings the autosave subsystem reads at runtime."""

    autosave_interval: int = config.DEFAULT_AUTOSAVE_INTERVAL_MINUTES

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Preferences":
        prefs = cls()
        raw = payload.get("autosave_interval", prefs.autosave_interval)
        try:
            prefs.autosave_interval = int(raw)
        except (TypeError, ValueError):
            LOGGER.warning("Invalid autosave_interval %r; using default", raw)
        return prefs

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


class PreferenceStore:
    """Loads and saves :class:`Preferences` to a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else config.PREFERENCES_PATH
        self.preferences = self.load()

    def load(self) -> Preferences:
        if not self.path.exists():
            return Preferences()
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Could not read preferences from %s: %s", self.path, exc)
            return Preferences()
        if not isinstance(payload, dict):
            LOGGER.warning("Ignoring malformed preferences file %s", self.path)
            return Preferences()
        return Preferences.from_payload(payload)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump(self.preferences.to_payload(), handle, indent=2)

    def autosave_interval(self) -> int:
        """Autosave period in minutes; zero or less disables autosave."""
        return self.preferences.autosave_interval

    def set_autosave_interval(self, minutes: int) -> None:
        self.preferences.autosave_interval = int(minutes)
        self.save()
