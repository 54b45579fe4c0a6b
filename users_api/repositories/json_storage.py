"""
JSON-file persistence for the user collection.

The whole collection is read on every call and written back in full; there
is no cache, index or lock. Callers do read-modify-write themselves.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

BOM = "\ufeff"


class StorageError(Exception):
    """Raised when the backing file cannot be read or written."""


class JsonUserStorage:
    """Loads and saves the user collection as one JSON array."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load_all(self) -> list[dict]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Data file %s not found, initialising empty collection", self.path)
            return self._reset()
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Could not read {self.path}: {exc}") from exc

        if raw.startswith(BOM):
            raw = raw[len(BOM):]
        if not raw.strip():
            return self._reset()
        try:
            records = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Data file %s is not valid JSON, resetting to empty collection", self.path)
            return self._reset()
        if not isinstance(records, list):
            logger.warning("Data file %s does not hold a JSON array, resetting", self.path)
            return self._reset()
        return records

    def save_all(self, records: list[dict]) -> None:
        # readers see either the previous snapshot or the new one, never a partial file
        payload = json.dumps(records, ensure_ascii=False, indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Could not write {self.path}: {exc}") from exc

    def _reset(self) -> list[dict]:
        self.save_all([])
        return []
