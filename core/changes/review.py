"""Approve/reject workflow over a single pending change set.

States: EMPTY -> PROPOSED -> (COMMITTING ->) EMPTY. A proposal stays until it is
explicitly committed or discarded; nothing expires it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum

from core.changes.models import CommitReport, ModifiedFile
from core.errors import ReviewStateError

logger = logging.getLogger(__name__)


class ReviewState(str, Enum):
    EMPTY = "empty"
    PROPOSED = "proposed"
    COMMITTING = "committing"


class ChangeReview:
    """Holds the proposal between a pipeline run and the caller's decision."""

    def __init__(self) -> None:
        self._state = ReviewState.EMPTY
        self._pending: tuple[ModifiedFile, ...] = ()
        self._active_path: str | None = None

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def pending(self) -> tuple[ModifiedFile, ...]:
        return self._pending

    @property
    def active_path(self) -> str | None:
        return self._active_path

    @property
    def active(self) -> ModifiedFile | None:
        for change in self._pending:
            if change.path == self._active_path:
                return change
        return None

    def propose(self, changes: Iterable[ModifiedFile]) -> bool:
        """Hold ``changes`` for review. Returns False if there was nothing to hold."""
        if self._state is not ReviewState.EMPTY:
            raise ReviewStateError(f"Cannot propose while {self._state.value}; commit or discard first")
        pending = tuple(changes)
        if not pending:
            return False
        self._pending = pending
        self._active_path = pending[0].path
        self._state = ReviewState.PROPOSED
        return True

    def select(self, path: str) -> ModifiedFile:
        if self._state is not ReviewState.PROPOSED:
            raise ReviewStateError("No proposal to select from")
        for change in self._pending:
            if change.path == path:
                self._active_path = path
                return change
        raise ReviewStateError(f"Path not in proposal: {path}")

    def discard(self) -> tuple[ModifiedFile, ...]:
        if self._state is not ReviewState.PROPOSED:
            raise ReviewStateError("No proposal to discard")
        discarded = self._pending
        self._reset()
        logger.info("Discarded %d pending changes", len(discarded))
        return discarded

    def commit(self, apply: Callable[[list[ModifiedFile]], CommitReport]) -> CommitReport:
        """Apply the whole set. The set is cleared even if ``apply`` raises."""
        if self._state is not ReviewState.PROPOSED:
            raise ReviewStateError("No proposal to commit")
        self._state = ReviewState.COMMITTING
        try:
            return apply(list(self._pending))
        finally:
            self._reset()

    def _reset(self) -> None:
        self._pending = ()
        self._active_path = None
        self._state = ReviewState.EMPTY
