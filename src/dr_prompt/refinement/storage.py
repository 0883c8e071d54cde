"""Key-value blob storage backing the refinement history."""

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_VALID_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStorage(ABC):
    """
    Whole-blob storage addressed by slot name.

    Implementations only need to read and overwrite a slot; callers handle
    absent or corrupt data themselves.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the blob stored under ``key``, or None if the slot is empty."""
        ...

    @abstractmethod
    def write(self, key: str, blob: str) -> None:
        """Overwrite the slot ``key`` with ``blob``."""
        ...


class MemoryStorage(KeyValueStorage):
    """In-process storage, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._slots: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def write(self, key: str, blob: str) -> None:
        self._slots[key] = blob

    def __contains__(self, key: str) -> bool:
        return key in self._slots


class FileStorage(KeyValueStorage):
    """
    Stores each slot as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place, so a reader never sees a half-written slot.

    Usage:
        storage = FileStorage(Path.home() / ".dr_prompt")
        storage.write("drPromptHistory", "[]")
        blob = storage.read("drPromptHistory")
    """

    def __init__(self, directory: Path | str):
        self.directory = Path(directory).expanduser()

    def _slot_path(self, key: str) -> Path:
        if not _VALID_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._slot_path(key)
        if not path.exists():
            logger.debug(f"No stored data at {path}")
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, blob: str) -> None:
        path = self._slot_path(key)
        self.directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {len(blob)} bytes to {path}")
