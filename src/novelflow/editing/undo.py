"""novelflow.editing.undo

Per-document undo log.

Every structural edit is an `UndoableAction` handed to `UndoLog.perform`. The
log records performed actions into an open buffer; `start_group`/`end_group`
bracket several actions into one undo step. `undo()` pops the newest step and
performs each member's inverse in reverse order. There is no redo stack:
inverses are applied, not recorded.

One UndoLog belongs to one Document and is passed explicitly to whatever
issues edits; there is no module-level log.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from ..logging import get_logger

logger = get_logger(__name__)


class UndoGroupDepthError(RuntimeError):
    """Raised when `end_group` is called without a matching `start_group`."""


class UndoableAction(ABC):
    """A structural edit that can produce its own exact inverse."""

    @abstractmethod
    def perform(self) -> None:
        """Apply the edit in place."""

    @abstractmethod
    def inverse(self) -> "UndoableAction":
        """Return (not apply) the action that reverses this one.

        Only valid after `perform()` has run.
        """


ActionListener = Callable[[UndoableAction], None]


class UndoLog:
    def __init__(
        self,
        *,
        on_action: Optional[ActionListener] = None,
        on_after_perform: Optional[Callable[[], None]] = None,
    ) -> None:
        self._current: List[UndoableAction] = []
        self._log: List[List[UndoableAction]] = []
        self._depth = 0
        self._frozen = False
        self._on_action = on_action
        self._on_after_perform = on_after_perform

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def can_undo(self) -> bool:
        return bool(self._log or self._current)

    def __len__(self) -> int:
        return len(self._log)

    def perform(self, action: UndoableAction) -> None:
        action.perform()
        if not self._frozen:
            self._current.append(action)
        self._notify(action)
        self._after_perform()

    def start_group(self) -> None:
        self._depth += 1

    def end_group(self) -> None:
        if self._depth == 0:
            raise UndoGroupDepthError("Undo group depths not matching")
        self._depth -= 1
        if self._depth == 0:
            self._flush()

    @contextmanager
    def transaction(self) -> Iterator["UndoLog"]:
        """Bracket the body in one undo step.

        The group is closed even if the body raises, so the depth counter stays balanced.
        """
        self.start_group()
        try:
            yield self
        finally:
            self.end_group()

    def freeze(self) -> None:
        self._frozen = True

    def thaw(self) -> None:
        self._frozen = False

    @contextmanager
    def frozen_scope(self) -> Iterator["UndoLog"]:
        """Apply actions without recording them; restores the previous frozen state."""
        previous = self._frozen
        self._frozen = True
        try:
            yield self
        finally:
            self._frozen = previous

    def undo(self) -> bool:
        """Undo the newest step. Returns False when there is nothing to undo."""
        self._flush()
        if not self._log:
            return False
        actions = self._log.pop()
        logger.debug("Undoing action group", actions=len(actions), remaining=len(self._log))
        for action in reversed(actions):
            inverse = action.inverse()
            inverse.perform()
            self._notify(inverse)
        self._after_perform()
        return True

    def _flush(self) -> None:
        if self._current:
            self._log.append(self._current)
            self._current = []

    def _notify(self, action: UndoableAction) -> None:
        if self._on_action is not None:
            self._on_action(action)

    def _after_perform(self) -> None:
        if self._on_after_perform is not None:
            self._on_after_perform()
