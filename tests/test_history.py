"""
Tests for the snapshot history.

These tests verify:
    - undo/redo are inverse
    - the redo tail is discarded by a new commit
    - the bound on retained snapshots
    - snapshots are isolated from the live document
"""

import pytest

from formengine.history import HistoryManager
from formengine.model import FormPage, FormSchema


def doc(title: str) -> FormSchema:
    return FormSchema(version="1.0", id="f", metadata={"title": title}, pages=[FormPage(id="p")])


def titles(history: HistoryManager, steps: int, direction: str):
    result = []
    for _ in range(steps):
        restored = getattr(history, direction)()
        result.append(restored.metadata["title"] if restored else None)
    return result


class TestHistoryManager:

    def test_fresh_history_cannot_move(self):
        history = HistoryManager()
        history.reset(doc("s0"))
        assert not history.can_undo()
        assert not history.can_redo()
        assert history.undo() is None
        assert history.redo() is None

    def test_undo_redo_inverse(self):
        """k undos followed by k redos return to the same document."""
        history = HistoryManager()
        history.reset(doc("s0"))
        for i in range(1, 5):
            history.commit(doc(f"s{i}"))

        assert titles(history, 3, "undo") == ["s3", "s2", "s1"]
        assert titles(history, 3, "redo") == ["s2", "s3", "s4"]
        assert not history.can_redo()

    def test_commit_truncates_redo_tail(self):
        history = HistoryManager()
        history.reset(doc("s0"))
        history.commit(doc("s1"))
        history.commit(doc("s2"))
        history.undo()
        history.commit(doc("s1b"))

        assert not history.can_redo()
        assert len(history) == 3
        assert titles(history, 2, "undo") == ["s1", "s0"]

    def test_limit_counts_initial_snapshot(self):
        """60 commits with a limit of 50 keep the 50 newest."""
        history = HistoryManager(limit=50)
        history.reset(doc("s0"))
        for i in range(1, 61):
            history.commit(doc(f"s{i}"))

        assert len(history) == 50
        undone = titles(history, 60, "undo")
        assert undone[:49] == [f"s{i}" for i in range(59, 10, -1)]
        assert undone[49:] == [None] * 11

    def test_snapshots_are_isolated(self):
        """Mutating a committed or restored document never alters history."""
        history = HistoryManager()
        live = doc("s0")
        history.reset(live)
        live.metadata["title"] = "changed"
        history.commit(doc("s1"))

        restored = history.undo()
        assert restored.metadata["title"] == "s0"
        restored.metadata["title"] = "changed again"
        history.redo()
        assert history.undo().metadata["title"] == "s0"

    def test_labels(self):
        history = HistoryManager()
        history.reset(doc("s0"))
        history.commit(doc("s1"), "add field")
        assert history.labels() == ["load", "add field"]
        assert history.cursor == 1

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            HistoryManager(limit=0)
