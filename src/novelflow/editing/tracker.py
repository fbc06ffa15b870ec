"""novelflow.editing.tracker

Cursor/selection tracker.

Groups are registered here while they are part of the document so that the
cursor can navigate between them; removing a group unregisters it and drops
it from the selection.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set


class GroupTracker:
    def __init__(self) -> None:
        self._registered: Dict[int, None] = {}
        self._selected: Set[int] = set()
        self._focused: Optional[int] = None

    @property
    def registered(self) -> List[int]:
        return list(self._registered)

    @property
    def selected(self) -> Set[int]:
        return set(self._selected)

    @property
    def focused(self) -> Optional[int]:
        return self._focused

    def is_registered(self, group_id: int) -> bool:
        return group_id in self._registered

    def register(self, group_id: int) -> None:
        self._registered[group_id] = None

    def unregister(self, group_id: int) -> None:
        self._registered.pop(group_id, None)
        self._selected.discard(group_id)
        if self._focused == group_id:
            self._focused = None

    def select(self, group_id: int) -> None:
        if group_id not in self._registered:
            raise KeyError(f"Group {group_id} is not registered")
        self._selected.add(group_id)

    def deselect(self, group_id: int) -> None:
        self._selected.discard(group_id)

    def clear_selection(self) -> None:
        self._selected.clear()

    def focus(self, group_id: Optional[int]) -> None:
        if group_id is not None and group_id not in self._registered:
            raise KeyError(f"Group {group_id} is not registered")
        self._focused = group_id
