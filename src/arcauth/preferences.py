"""Best-effort key/value preference store.

:class:`PreferenceStore` keeps small, non-secret values (such as the last
known display name) in ``<data_dir>/preferences.json``, independently of
the secure credential store. It is deliberately forgiving: a missing,
unreadable or corrupt file reads as empty, and failed writes are logged
and dropped. Nothing here ever raises to the caller.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from arcauth.config import atomic_write, get_data_dir

logger = logging.getLogger(__name__)

_PREFERENCES_FILENAME = "preferences.json"


class PreferenceStore:
    """Read/write string preferences in a single JSON file.

    Args:
        path: Optional explicit file path. Defaults to
            ``get_data_dir() / "preferences.json"``, resolved lazily.

    Example::

        prefs = PreferenceStore()
        prefs.set_string("auth.displayName", "Jane Appleseed")
        assert prefs.get_string("auth.displayName") == "Jane Appleseed"
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path of the preferences file."""
        if self._path is None:
            self._path = get_data_dir() / _PREFERENCES_FILENAME
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            if not self.path.is_file():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read preferences at %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            atomic_write(self.path, json.dumps(data, indent=2) + "\n")
        except OSError as exc:
            logger.warning("Could not write preferences at %s: %s", self._path, exc)

    def get_string(self, key: str) -> Optional[str]:
        """Return the string stored under *key*, or ``None``."""
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        """Remove *key*. A missing key is a no-op."""
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
