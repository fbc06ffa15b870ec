"""novelflow.editing.actions

Undoable structural edits.

Each action captures enough state on `perform()` to build its exact inverse.
Calling `inverse()` before `perform()` raises `InverseBeforePerformError`:
removal actions only learn what they removed once they have removed it.

Actions reference groups but never own them; groups are owned by the
Document's arena, which keeps removed groups alive so undo can restore them.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from .undo import UndoableAction

if TYPE_CHECKING:
    from ..core.models import Instruction
    from ..document.document import Document
    from ..document.group import EditorInstruction, GroupEditor, InstructionLine


class InverseBeforePerformError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("Cannot inverse action before performing the action.")


class _Capture(Enum):
    NOT_YET = "not_yet"


NOT_CAPTURED = _Capture.NOT_YET

# (relation list name on the neighbour, neighbour id, position of our id in that list)
NeighbourSlot = Tuple[str, int, int]
# (position in origin.children, position in target.parents)
EdgeSlot = Tuple[int, int]


def _last_index(ids: List[int], value: int) -> int:
    for i in range(len(ids) - 1, -1, -1):
        if ids[i] == value:
            return i
    raise ValueError(f"Group {value} is not linked")


class AddGroupAction(UndoableAction):
    def __init__(
        self,
        group: "GroupEditor",
        document: "Document",
        *,
        index: Optional[int] = None,
        slots: Optional[List[NeighbourSlot]] = None,
        selected: bool = False,
        focused: bool = False,
    ) -> None:
        self.group = group
        self.document = document
        self.index = index
        self.slots = slots
        self.selected = selected
        self.focused = focused
        self._performed = False

    def perform(self) -> None:
        group = self.group
        document = self.document
        if self.index is None:
            document._group_ids.append(group.id)
        else:
            document._group_ids.insert(self.index, group.id)
        document.tracker.register(group.id)
        if self.selected:
            document.tracker.select(group.id)
        if self.focused:
            document.tracker.focus(group.id)

        # add parent-child relations
        if self.slots is not None:
            for side, neighbour_id, position in reversed(self.slots):
                getattr(document.group(neighbour_id), side).insert(position, group.id)
        else:
            for child_id in group.children:
                if child_id != group.id:
                    document.group(child_id).parents.append(group.id)
            for parent_id in group.parents:
                if parent_id != group.id:
                    document.group(parent_id).children.append(group.id)
        self._performed = True

    def inverse(self) -> "RemoveGroupAction":
        if not self._performed:
            raise InverseBeforePerformError()
        return RemoveGroupAction(self.group, self.document)


class RemoveGroupAction(UndoableAction):
    def __init__(self, group: "GroupEditor", document: "Document") -> None:
        self.group = group
        self.document = document
        self._index: Union[int, _Capture] = NOT_CAPTURED
        self._slots: Union[List[NeighbourSlot], _Capture] = NOT_CAPTURED
        self._selected = False
        self._focused = False

    def perform(self) -> None:
        group = self.group
        document = self.document
        index = document._group_ids.index(group.id)
        del document._group_ids[index]
        tracker = document.tracker
        self._selected = group.id in tracker.selected
        self._focused = tracker.focused == group.id
        tracker.unregister(group.id)

        # remove parent-child relations
        slots: List[NeighbourSlot] = []
        for child_id in group.children:
            if child_id == group.id:
                continue
            child = document.group(child_id)
            position = _last_index(child.parents, group.id)
            del child.parents[position]
            slots.append(("parents", child_id, position))
        for parent_id in group.parents:
            if parent_id == group.id:
                continue
            parent = document.group(parent_id)
            position = _last_index(parent.children, group.id)
            del parent.children[position]
            slots.append(("children", parent_id, position))

        self._index = index
        self._slots = slots

    def inverse(self) -> AddGroupAction:
        if self._index is NOT_CAPTURED or self._slots is NOT_CAPTURED:
            raise InverseBeforePerformError()
        return AddGroupAction(
            self.group,
            self.document,
            index=self._index,
            slots=list(self._slots),
            selected=self._selected,
            focused=self._focused,
        )


class AddInstructionAction(UndoableAction):
    def __init__(self, instruction: "EditorInstruction", index: int, group: "GroupEditor") -> None:
        self.instruction = instruction
        self.index = index
        self.group = group
        self._performed = False

    def perform(self) -> None:
        group = self.group
        new_lines = self.instruction.lines
        if not 0 <= self.index <= len(group._instructions):
            raise IndexError(f"Instruction index {self.index} out of range for group {group.id}")
        if not new_lines:
            raise ValueError("Instruction has no rendered lines")

        next_instruction = group._instructions[self.index] if self.index < len(group._instructions) else None
        if next_instruction is not None:
            position = group.locate_line(next_instruction.lines[0])
            group._lines[position:position] = new_lines
        else:
            group._lines.extend(new_lines)
        group._instructions.insert(self.index, self.instruction)

        for line in new_lines:
            group._line_owner[line] = self.instruction

        group.update_height()
        self._performed = True

    def inverse(self) -> "RemoveInstructionAction":
        if not self._performed:
            raise InverseBeforePerformError()
        return RemoveInstructionAction(self.index, self.group)


class RemoveInstructionAction(UndoableAction):
    def __init__(self, index: int, group: "GroupEditor") -> None:
        self.index = index
        self.group = group
        self.removed_instruction: Union["EditorInstruction", _Capture] = NOT_CAPTURED

    def perform(self) -> None:
        group = self.group
        instruction = group._instructions[self.index]
        self.removed_instruction = instruction

        del group._instructions[self.index]
        for line in instruction.lines:
            del group._lines[group.locate_line(line)]
            group._line_owner.pop(line, None)

        group.update_height()

    def inverse(self) -> AddInstructionAction:
        if self.removed_instruction is NOT_CAPTURED:
            raise InverseBeforePerformError()
        return AddInstructionAction(self.removed_instruction, self.index, self.group)


class EditLineAction(UndoableAction):
    """Change the text of one line in place.

    The owning instruction is re-read from its lines (or set to `value` when
    given). The line object is kept, so cursors and selections stay valid.
    """

    def __init__(
        self,
        line: "InstructionLine",
        text: str,
        group: "GroupEditor",
        *,
        value: Optional["Instruction"] = None,
    ) -> None:
        self.line = line
        self.text = text
        self.group = group
        self.value = value
        self.previous_text: Union[str, _Capture] = NOT_CAPTURED
        self._previous_value: Union["Instruction", _Capture] = NOT_CAPTURED

    def perform(self) -> None:
        owner = self.group.owner_of(self.line)
        if self.value is not None:
            value = self.value
        else:
            texts = [self.text if line is self.line else line.text for line in owner.lines]
            value = owner.parse_lines(texts)

        self.previous_text = self.line.text
        self._previous_value = owner.instruction
        self.line.text = self.text
        owner.instruction = value

    def inverse(self) -> "EditLineAction":
        if self.previous_text is NOT_CAPTURED or self._previous_value is NOT_CAPTURED:
            raise InverseBeforePerformError()
        return EditLineAction(self.line, self.previous_text, self.group, value=self._previous_value)


class MarkGroupAsStartAction(UndoableAction):
    def __init__(self, group: Optional["GroupEditor"], document: "Document") -> None:
        self.group = group
        self.document = document
        self._previous: Union[Optional[int], _Capture] = NOT_CAPTURED

    def perform(self) -> None:
        document = self.document
        previous = document._start_group
        if previous is not None:
            document.group(previous).is_start = False
        document._start_group = self.group.id if self.group is not None else None
        if self.group is not None:
            self.group.is_start = True
        self._previous = previous

    def inverse(self) -> "MarkGroupAsStartAction":
        if self._previous is NOT_CAPTURED:
            raise InverseBeforePerformError()
        previous = self.document.group(self._previous) if self._previous is not None else None
        return MarkGroupAsStartAction(previous, self.document)


class BranchTargetChangeAction(UndoableAction):
    """Point a branch instruction at another group (or at none).

    The edge is mirrored in `group.children` / `target.parents`. `insert_at`
    and `remove_at` pin the list positions so an inverse restores the exact
    ordering; by default the new edge is appended and the old one is taken
    from the end.
    """

    def __init__(
        self,
        target: Optional["GroupEditor"],
        instruction: "EditorInstruction",
        group: "GroupEditor",
        document: "Document",
        *,
        insert_at: Optional[EdgeSlot] = None,
        remove_at: Optional[EdgeSlot] = None,
    ) -> None:
        self.target = target
        self.instruction = instruction
        self.group = group
        self.document = document
        self.insert_at = insert_at
        self.remove_at = remove_at
        self._previous: Union[Optional[int], _Capture] = NOT_CAPTURED
        self._removed_at: Optional[EdgeSlot] = None
        self._inserted_at: Optional[EdgeSlot] = None

    def perform(self) -> None:
        group = self.group
        previous = self.instruction.target

        # remove parent/child relation
        removed_at: Optional[EdgeSlot] = None
        if previous is not None:
            previous_group = self.document.group(previous)
            if self.remove_at is not None:
                child_pos, parent_pos = self.remove_at
            else:
                child_pos = _last_index(group.children, previous)
                parent_pos = _last_index(previous_group.parents, group.id)
            del group.children[child_pos]
            del previous_group.parents[parent_pos]
            removed_at = (child_pos, parent_pos)

        # update instruction
        self.instruction._target = self.target.id if self.target is not None else None

        # update parent/child relations
        inserted_at: Optional[EdgeSlot] = None
        if self.target is not None:
            if self.insert_at is not None:
                child_pos, parent_pos = self.insert_at
            else:
                child_pos, parent_pos = len(group.children), len(self.target.parents)
            group.children.insert(child_pos, self.target.id)
            self.target.parents.insert(parent_pos, group.id)
            inserted_at = (child_pos, parent_pos)

        self._previous = previous
        self._removed_at = removed_at
        self._inserted_at = inserted_at

    def inverse(self) -> "BranchTargetChangeAction":
        if self._previous is NOT_CAPTURED:
            raise InverseBeforePerformError()
        previous = self.document.group(self._previous) if self._previous is not None else None
        return BranchTargetChangeAction(
            previous,
            self.instruction,
            self.group,
            self.document,
            insert_at=self._removed_at,
            remove_at=self._inserted_at,
        )
