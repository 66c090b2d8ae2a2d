"""Small JSON key/value store for state that survives between runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from cain.errors import IOFailureError, InvalidInputError

LOGGER = logging.getLogger(__name__)

DEFAULT_RUNTIME_PATH = Path("~/.config/cain/runtime.json")


class RuntimeCache:
    """Read and write string values in a per-user JSON document.

    A missing file means nothing has been cached yet.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = (path or DEFAULT_RUNTIME_PATH).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        """Return the cached value for ``key`` or ``None``.

        Raises:
            InvalidInputError: If the file is not a JSON object or the value is not a string.
        """
        value = self._read().get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise InvalidInputError(f"Key {key} is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, keeping the other entries."""
        data = self._read()
        data[key] = value
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise IOFailureError(f"Failed to write runtime file {self._path}: {exc}") from exc
        LOGGER.debug("Stored runtime key %s", key)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise IOFailureError(f"Failed to open runtime file {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise InvalidInputError(f"Invalid runtime file: {exc}") from exc
        if not isinstance(data, dict):
            raise InvalidInputError("Runtime file must contain a JSON object")
        return data


__all__ = ["RuntimeCache", "DEFAULT_RUNTIME_PATH"]
