"""Tests for refinement history tracking."""

import json
from unittest.mock import MagicMock

import pytest

from dr_prompt.models.targets import TargetModel
from dr_prompt.refinement.history import HISTORY_STORAGE_KEY, RefinementHistory
from dr_prompt.refinement.models import HistoryEntry, RefinedResult
from dr_prompt.refinement.storage import FileStorage, MemoryStorage


def make_result(n: int = 0) -> RefinedResult:
    return RefinedResult(refined_prompt=f"refined {n}", explanation=f"- change {n}")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def history(storage):
    return RefinementHistory(storage)


class TestRecord:
    """Tests for recording entries."""

    def test_newest_first(self, history):
        """New entries are inserted at the front."""
        history.record("first", TargetModel.GEMINI, make_result(1))
        history.record("second", TargetModel.CLAUDE, make_result(2))

        assert [e.original_prompt for e in history.entries] == ["second", "first"]

    def test_capacity_evicts_oldest(self, history):
        """25 records keep the 20 newest."""
        for i in range(25):
            history.record(f"prompt {i}", TargetModel.GROK, make_result(i))

        prompts = [e.original_prompt for e in history.entries]
        assert len(prompts) == 20
        assert prompts[0] == "prompt 24"
        assert prompts[-1] == "prompt 5"

    def test_unique_ids(self, history):
        """Every recorded entry has a distinct id."""
        for i in range(10):
            history.record("same", TargetModel.GEMINI, make_result(i))
        assert len({e.id for e in history.entries}) == 10

    def test_persists_on_record(self, history, storage):
        """Each record writes the whole sequence."""
        entry = history.record("p", TargetModel.CHATGPT, make_result())

        stored = json.loads(storage.read(HISTORY_STORAGE_KEY))
        assert stored[0]["id"] == entry.id
        assert stored[0]["originalPrompt"] == "p"
        assert stored[0]["targetModel"] == "ChatGPT"
        assert stored[0]["result"]["refinedPrompt"] == "refined 0"

    def test_invalid_capacity(self, storage):
        """Capacity must be positive."""
        with pytest.raises(ValueError):
            RefinementHistory(storage, max_entries=0)


class TestRemove:
    """Tests for removing entries."""

    def test_remove_existing(self, history):
        """Removing deletes exactly that entry."""
        keep = history.record("keep", TargetModel.GEMINI, make_result())
        drop = history.record("drop", TargetModel.GEMINI, make_result())

        assert history.remove(drop.id) is True
        assert [e.id for e in history.entries] == [keep.id]
        assert history.get(drop.id) is None

    def test_remove_unknown_is_noop(self, history, storage):
        """An unknown id leaves the sequence unchanged but still persists."""
        history.record("a", TargetModel.GEMINI, make_result())
        before = history.entries
        storage.write(HISTORY_STORAGE_KEY, "stale")

        assert history.remove("does-not-exist") is False
        assert history.entries == before
        assert storage.read(HISTORY_STORAGE_KEY) == history.dumps()


class TestClearAll:
    """Tests for clear_all."""

    def test_clear_persists_empty(self, history, storage):
        """A fresh load after clearing is empty."""
        for i in range(3):
            history.record(f"p{i}", TargetModel.GEMINI, make_result(i))

        history.clear_all()

        assert len(history) == 0
        assert len(RefinementHistory.from_storage(storage)) == 0


class TestLoad:
    """Tests for loading persisted history."""

    def test_round_trip(self, tmp_path):
        """Recorded entries survive a reload from disk."""
        history = RefinementHistory(FileStorage(tmp_path))
        for i in range(3):
            history.record(f"p{i}", TargetModel.CLAUDE, make_result(i))

        reloaded = RefinementHistory.from_storage(FileStorage(tmp_path))

        assert reloaded.entries == history.entries

    def test_absent_is_empty(self, history):
        """No stored data yields an empty history."""
        assert history.load() == ()

    @pytest.mark.parametrize("blob", ["not json", '{"a": 1}', '[{"id": "x"}]'])
    def test_corrupt_is_empty(self, storage, blob):
        """Corrupt data is discarded as a whole."""
        storage.write(HISTORY_STORAGE_KEY, blob)
        assert len(RefinementHistory.from_storage(storage)) == 0

    def test_duplicate_ids_dropped(self, storage):
        """Later duplicates of an id are dropped."""
        entry = HistoryEntry(
            original_prompt="dup",
            target_model=TargetModel.GEMINI,
            result=make_result(),
        )
        blob = json.dumps([
            entry.model_dump(mode="json", by_alias=True),
            entry.model_dump(mode="json", by_alias=True),
        ])
        storage.write(HISTORY_STORAGE_KEY, blob)

        assert len(RefinementHistory.from_storage(storage)) == 1

    def test_truncates_to_capacity(self, storage):
        """Stored sequences longer than capacity are truncated."""
        big = RefinementHistory(storage, max_entries=30)
        for i in range(30):
            big.record(f"p{i}", TargetModel.GEMINI, make_result(i))

        loaded = RefinementHistory.from_storage(storage)

        assert len(loaded) == 20
        assert loaded.entries[0].original_prompt == "p29"

    def test_epoch_timestamps_accepted(self, storage):
        """Numeric epoch timestamps load as datetimes."""
        blob = json.dumps([{
            "id": "abc",
            "timestamp": 1700000000000 / 1000,
            "originalPrompt": "p",
            "targetModel": "Grok",
            "result": {"refinedPrompt": "r", "explanation": "e"},
        }])
        storage.write(HISTORY_STORAGE_KEY, blob)

        loaded = RefinementHistory.from_storage(storage)

        assert loaded.entries[0].timestamp.year == 2023


class TestStorageFailures:
    """Storage failures never reach the caller."""

    def test_write_failure_logged(self):
        """A failing write keeps the in-memory state."""
        storage = MagicMock()
        storage.write.side_effect = OSError("disk full")
        history = RefinementHistory(storage)

        entry = history.record("p", TargetModel.GEMINI, make_result())

        assert history.entries == (entry,)

    def test_read_failure_is_empty(self):
        """A failing read yields an empty history."""
        storage = MagicMock()
        storage.read.side_effect = OSError("permission denied")

        assert len(RefinementHistory.from_storage(storage)) == 0


class TestSummary:
    """Tests for summary."""

    def test_counts_by_target(self, history):
        history.record("a", TargetModel.GEMINI, make_result())
        history.record("b", TargetModel.GEMINI, make_result())
        history.record("c", TargetModel.GROK, make_result())

        summary = history.summary()

        assert summary["total_entries"] == 3
        assert summary["by_target"] == {"Gemini": 2, "Grok": 1}
