"""Read access to the legacy flat key-value storage file.

Older releases kept each collection as a JSON-serialized array under a fixed
key in a single JSON object on disk. The file is only ever read, to seed an
empty database once.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

LEGACY_ACTIVITIES_KEY = "timewise_activities_v1"
LEGACY_GOALS_KEY = "timewise_goals_v1"


class LegacyKeyValueStore:
    """Flat string-to-string mapping backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        """Return the raw value stored under ``key``, or None."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError:
            logger.warning("Legacy storage file %s is not valid UTF-8.", self.path)
            return None
        try:
            entries = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("Legacy storage file %s is not valid JSON.", self.path)
            return None
        if not isinstance(entries, dict):
            logger.warning("Legacy storage file %s is not a key-value object.", self.path)
            return None
        value = entries.get(key)
        return value if isinstance(value, str) else None
