"""Refinement history tracking with persistence."""

import logging
from collections import Counter
from typing import Any, Iterator, Optional

from pydantic import TypeAdapter

from dr_prompt.models.targets import TargetModel

from .models import HistoryEntry, RefinedResult, new_entry_id
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

HISTORY_STORAGE_KEY = "drPromptHistory"
DEFAULT_MAX_ENTRIES = 20

_entries_adapter = TypeAdapter(list[HistoryEntry])


class RefinementHistory:
    """
    Bounded, most-recent-first record of successful refinements.

    Every mutation re-persists the whole sequence to ``storage``. Storage
    failures are logged and never raised: history is a convenience cache.

    Usage:
        history = RefinementHistory(FileStorage("~/.dr_prompt"))
        history.load()
        entry = history.record("write a poem", TargetModel.CLAUDE, result)
        history.remove(entry.id)
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        storage_key: str = HISTORY_STORAGE_KEY,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.storage = storage
        self.max_entries = max_entries
        self.storage_key = storage_key
        self._entries: list[HistoryEntry] = []

    @classmethod
    def from_storage(
        cls,
        storage: KeyValueStorage,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> "RefinementHistory":
        """Create a history and load whatever the storage holds."""
        history = cls(storage, max_entries=max_entries)
        history.load()
        return history

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        """Entries, newest first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(tuple(self._entries))

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        """Find an entry by id."""
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def load(self) -> tuple[HistoryEntry, ...]:
        """
        Load the persisted sequence, replacing the in-memory one.

        Absent or unreadable data yields an empty history.
        """
        try:
            blob = self.storage.read(self.storage_key)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read history: {e}")
            blob = None

        entries: list[HistoryEntry] = []
        if blob:
            try:
                entries = _entries_adapter.validate_json(blob)
            except ValueError as e:
                logger.warning(f"Discarding corrupt history data: {e}")
                entries = []

        seen: set[str] = set()
        unique = []
        for entry in entries:
            if entry.id in seen:
                continue
            seen.add(entry.id)
            unique.append(entry)

        self._entries = unique[: self.max_entries]
        logger.info(f"Loaded refinement history with {len(self._entries)} entries")
        return self.entries

    def record(
        self,
        original_prompt: str,
        target: TargetModel,
        result: RefinedResult,
    ) -> HistoryEntry:
        """Add a new refinement as the newest entry, evicting beyond capacity."""
        entry_id = new_entry_id()
        while self.get(entry_id) is not None:
            entry_id = new_entry_id()

        entry = HistoryEntry(
            id=entry_id,
            original_prompt=original_prompt,
            target_model=target,
            result=result,
        )

        self._entries.insert(0, entry)
        evicted = len(self._entries) - self.max_entries
        if evicted > 0:
            del self._entries[self.max_entries:]
            logger.debug(f"Evicted {evicted} oldest history entries")

        self._persist()
        logger.debug(f"Added history entry: {entry.to_summary()}")
        return entry

    def remove(self, entry_id: str) -> bool:
        """
        Remove the entry with ``entry_id``.

        Returns:
            True if an entry was removed; an unknown id is a no-op
        """
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        removed = len(self._entries) < before
        self._persist()
        return removed

    def clear_all(self) -> None:
        """Clear all history. Callers confirm with the user first."""
        self._entries = []
        self._persist()
        logger.info("Cleared refinement history")

    def dumps(self) -> str:
        """Serialize the current sequence to its stored JSON form."""
        return _entries_adapter.dump_json(self._entries, by_alias=True, indent=2).decode("utf-8")

    def _persist(self) -> None:
        try:
            self.storage.write(self.storage_key, self.dumps())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to persist history: {e}")

    def summary(self) -> dict[str, Any]:
        """Get a summary of the history state."""
        by_target = Counter(e.target_model.value for e in self._entries)
        return {
            "total_entries": len(self._entries),
            "max_entries": self.max_entries,
            "by_target": dict(by_target),
        }
