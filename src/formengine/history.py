"""
Snapshot-based undo/redo history.

The history is an ordered list of whole-document snapshots plus a cursor
pointing at the snapshot that matches the live document:

    [S0, S1, S2, S3]        cursor = 3  (live == S3)
    undo()                  cursor = 2, returns copy of S2
    commit(S2')             [S0, S1, S2, S2'], old S3 unreachable

Rules:
    - exactly one snapshot per committed mutation
    - committing with the cursor behind the tail discards the redo tail
    - once more than ``limit`` snapshots exist the oldest are evicted
    - undo/redo at either end are no-ops returning None
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import List, Optional

from .model import FormSchema

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class Snapshot:
    """
    An immutable point in the document history.

    Properties:
        schema: Deep copy of the document, never handed out directly
        label: Human-readable name of the mutation that produced it
    """

    schema: FormSchema
    label: str = ""


class HistoryManager:
    """Bounded snapshot stack with a cursor."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._snapshots: List[Snapshot] = []
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def cursor(self) -> int:
        return self._cursor

    def reset(self, schema: FormSchema, label: str = "load") -> None:
        """Drop everything and start over from ``schema``."""
        self._snapshots = [Snapshot(copy.deepcopy(schema), label)]
        self._cursor = 0

    def commit(self, schema: FormSchema, label: str = "") -> None:
        """Record ``schema`` as the state after a mutation."""
        del self._snapshots[self._cursor + 1:]
        self._snapshots.append(Snapshot(copy.deepcopy(schema), label))
        overflow = len(self._snapshots) - self.limit
        if overflow > 0:
            del self._snapshots[:overflow]
            logger.debug("History limit %d reached, evicted %d snapshot(s)", self.limit, overflow)
        self._cursor = len(self._snapshots) - 1
        logger.debug("Committed snapshot %d %r", self._cursor, label)

    def can_undo(self) -> bool:
        return self._cursor > 0

    def can_redo(self) -> bool:
        return 0 <= self._cursor < len(self._snapshots) - 1

    def undo(self) -> Optional[FormSchema]:
        """Step back; returns a copy of the restored document or None."""
        if not self.can_undo():
            return None
        self._cursor -= 1
        logger.debug("Undo to snapshot %d", self._cursor)
        return copy.deepcopy(self._snapshots[self._cursor].schema)

    def redo(self) -> Optional[FormSchema]:
        """Step forward; returns a copy of the restored document or None."""
        if not self.can_redo():
            return None
        self._cursor += 1
        logger.debug("Redo to snapshot %d", self._cursor)
        return copy.deepcopy(self._snapshots[self._cursor].schema)

    def labels(self) -> List[str]:
        """Labels of the retained snapshots, oldest first."""
        return [snapshot.label for snapshot in self._snapshots]
