"""novelflow.document.document

The editable document: an arena of instruction groups plus the per-document
undo log.

- The arena (`_groups`) owns every group ever created, keyed by a stable id.
  Removing a group only drops its id from the live list (`_group_ids`); the
  arena keeps the object so that undo can put it back.
- Parent/child links are group ids, never object references.
- All edits go through `UndoLog.perform`; each public operation below is one
  undo step. Bulk loads (`load_flow`, deserialization) run frozen.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ..core.config import EditorConfig
from ..core.models import ControlInstruction, ControlKind, PlainInstruction, load_flow_json
from ..editing.actions import (
    AddGroupAction,
    AddInstructionAction,
    BranchTargetChangeAction,
    EditLineAction,
    MarkGroupAsStartAction,
    RemoveGroupAction,
    RemoveInstructionAction,
)
from ..editing.tracker import GroupTracker
from ..editing.undo import UndoLog
from ..graph.builder import build_graph
from ..logging import get_logger
from .group import EditorInstruction, GroupEditor, InstructionLine, LineRenderer, render_instruction_lines

logger = get_logger(__name__)


class CompileError(ValueError):
    """Raised when the document cannot be compiled into a flow."""


def _replace_in_payload(payload: Any, old: str, new: str) -> Any:
    if isinstance(payload, str):
        return payload.replace(old, new)
    if isinstance(payload, list):
        return [_replace_in_payload(v, old, new) for v in payload]
    if isinstance(payload, dict):
        return {k: _replace_in_payload(v, old, new) for k, v in payload.items()}
    return payload


class Document:
    def __init__(
        self,
        *,
        config: Optional[EditorConfig] = None,
        undo_log: Optional[UndoLog] = None,
        tracker: Optional[GroupTracker] = None,
        renderer: LineRenderer = render_instruction_lines,
    ) -> None:
        self.config = config or EditorConfig()
        self.undo_log = undo_log or UndoLog()
        self.tracker = tracker or GroupTracker()
        self.renderer = renderer

        # DO NOT MUTATE OUTSIDE `UndoableAction`
        self._groups: Dict[int, GroupEditor] = {}
        self._group_ids: List[int] = []
        self._start_group: Optional[int] = None

        self._next_id = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def group(self, group_id: int) -> GroupEditor:
        """Look up a group in the arena (live or removed)."""
        try:
            return self._groups[group_id]
        except KeyError as e:
            raise KeyError(f"Unknown group id {group_id}") from e

    @property
    def groups(self) -> List[GroupEditor]:
        """Live groups, in document order."""
        return [self._groups[gid] for gid in self._group_ids]

    @property
    def group_ids(self) -> List[int]:
        return list(self._group_ids)

    @property
    def start_group(self) -> Optional[GroupEditor]:
        return self._groups[self._start_group] if self._start_group is not None else None

    def is_live(self, group_id: int) -> bool:
        return group_id in self._group_ids

    def make_instruction(self, raw: Any) -> EditorInstruction:
        return EditorInstruction.create(raw, renderer=self.renderer)

    # ------------------------------------------------------------------
    # Group operations
    # ------------------------------------------------------------------

    def new_group(self, *, x: Optional[float] = None, y: Optional[float] = None) -> GroupEditor:
        """Create a group in the arena (not yet part of the document)."""
        if x is None and y is None and not self._group_ids:
            x, y = self.config.new_group_x, self.config.new_group_y
        group = GroupEditor(self._next_id, config=self.config, x=x or 0, y=y or 0)
        self._groups[group.id] = group
        self._next_id += 1
        return group

    def add_group(self, group: GroupEditor) -> None:
        with self.undo_log.transaction():
            self.undo_log.perform(AddGroupAction(group, self))

    def create_group(self, instructions: Iterable[Any] = (), *, x: Optional[float] = None, y: Optional[float] = None) -> GroupEditor:
        """New group with initial instructions, added in one undo step.

        The first group of an empty document becomes the start group.
        """
        group = self.new_group(x=x, y=y)
        with self.undo_log.transaction():
            self.undo_log.perform(AddGroupAction(group, self))
            for raw in instructions:
                instruction = self.make_instruction(raw)
                index = self._placement(group, instruction, len(group.instructions))
                self.undo_log.perform(AddInstructionAction(instruction, index, group))
            if self._start_group is None:
                self.undo_log.perform(MarkGroupAsStartAction(group, self))
        return group

    def remove_group(self, group: GroupEditor) -> None:
        """Remove a group, rerouting incoming branches to its first other child."""
        with self.undo_log.transaction():
            self._relink_parents_to_final_branch(group)
            if self._start_group == group.id:
                self.undo_log.perform(MarkGroupAsStartAction(None, self))
            self.undo_log.perform(RemoveGroupAction(group, self))

    def remove_groups(self, groups: Iterable[GroupEditor]) -> None:
        with self.undo_log.transaction():
            for group in list(groups):
                self.remove_group(group)

    def mark_group_as_start(self, group: Optional[GroupEditor]) -> None:
        with self.undo_log.transaction():
            self.undo_log.perform(MarkGroupAsStartAction(group, self))

    def _relink_parents_to_final_branch(self, group: GroupEditor) -> None:
        new_target_id = group.first_other_child()
        new_target = self._groups[new_target_id] if new_target_id is not None else None

        # parents shrink while retargeting
        for parent_id in list(dict.fromkeys(reversed(group.parents))):
            if parent_id == group.id or not self.is_live(parent_id):
                continue
            parent = self._groups[parent_id]
            for instruction in parent.branch_instructions():
                if instruction.target == group.id:
                    self.undo_log.perform(BranchTargetChangeAction(new_target, instruction, parent, self))

    # ------------------------------------------------------------------
    # Instruction operations
    # ------------------------------------------------------------------

    def insert_instruction(
        self,
        group: GroupEditor,
        index: int,
        raw: Any,
        *,
        target: Optional[GroupEditor] = None,
    ) -> EditorInstruction:
        """Insert an instruction (optionally targeting a group) as one undo step.

        The index is clamped so plain instructions stay ahead of branches.
        """
        instruction = raw if isinstance(raw, EditorInstruction) else self.make_instruction(raw)
        index = self._placement(group, instruction, index)
        with self.undo_log.transaction():
            self.undo_log.perform(AddInstructionAction(instruction, index, group))
            if target is not None:
                self.undo_log.perform(BranchTargetChangeAction(target, instruction, group, self))
        return instruction

    def append_instruction(self, group: GroupEditor, raw: Any, *, target: Optional[GroupEditor] = None) -> EditorInstruction:
        return self.insert_instruction(group, len(group.instructions), raw, target=target)

    @staticmethod
    def _placement(group: GroupEditor, instruction: EditorInstruction, index: int) -> int:
        # plain instructions lead, branches trail
        boundary = group.first_branch_index()
        if instruction.is_branch:
            return max(index, boundary)
        return min(index, boundary)

    def edit_line(self, group: GroupEditor, line: InstructionLine, text: str) -> None:
        """Set the text of one line of a plain instruction, as one undo step."""
        with self.undo_log.transaction():
            self.undo_log.perform(EditLineAction(line, text, group))

    def remove_instruction(self, group: GroupEditor, index: int) -> EditorInstruction:
        instruction = group.get_instruction(index)
        with self.undo_log.transaction():
            if instruction.target is not None:
                self.undo_log.perform(BranchTargetChangeAction(None, instruction, group, self))
            self.undo_log.perform(RemoveInstructionAction(index, group))
        return instruction

    def set_branch_target(self, group: GroupEditor, instruction: EditorInstruction, target: Optional[GroupEditor]) -> None:
        if not instruction.is_branch:
            raise ValueError("Not a branch")
        group.index_of(instruction)
        with self.undo_log.transaction():
            self.undo_log.perform(BranchTargetChangeAction(target, instruction, group, self))

    def replace_text(self, old: str, new: str) -> int:
        """Replace `old` with `new` in every plain instruction, as one undo step.

        Only payload values are searched (never dict keys). Changed lines are
        edited in place; an instruction whose rendering changes its number of
        lines is swapped out wholesale. Returns the number of instructions changed.
        """
        if not old:
            raise ValueError("replace_text requires a non-empty search string")
        replaced = 0
        with self.undo_log.transaction():
            for group in self.groups:
                for index, instruction in enumerate(group.instructions):
                    current = instruction.instruction
                    if not isinstance(current, PlainInstruction):
                        continue
                    payload = _replace_in_payload(current.payload, old, new)
                    if payload == current.payload:
                        continue
                    value = PlainInstruction(payload)
                    texts = list(self.renderer(value)) or [""]
                    lines = instruction.lines
                    if len(texts) != len(lines) or texts == [line.text for line in lines]:
                        self.undo_log.perform(RemoveInstructionAction(index, group))
                        self.undo_log.perform(AddInstructionAction(self.make_instruction(value), index, group))
                    else:
                        for line, text in zip(lines, texts):
                            if line.text != text:
                                self.undo_log.perform(EditLineAction(line, text, group, value=value))
                    replaced += 1
        return replaced

    def undo(self) -> bool:
        return self.undo_log.undo()

    # ------------------------------------------------------------------
    # Load / compile
    # ------------------------------------------------------------------

    def load_flow(self, flow: Any) -> List[GroupEditor]:
        """Append the groups reconstructed from a compiled flow (not undoable).

        Each fallthrough edge becomes an explicit `jump` branch so the edge can be
        edited like any other. The first reconstructed group becomes the start group
        unless the document already has one.
        """
        built = build_graph(load_flow_json(flow), config=self.config)
        created: List[GroupEditor] = []
        with self.undo_log.frozen_scope():
            for data in built:
                group = self.new_group(x=data.x, y=data.y)
                self.undo_log.perform(AddGroupAction(group, self))
                created.append(group)

            for data, group in zip(built, created):
                index = 0
                for instruction in data.instructions:
                    self.undo_log.perform(AddInstructionAction(self.make_instruction(instruction), index, group))
                    index += 1
                for branch, target_gid in zip(data.branches, data.branch_targets):
                    editor_instruction = self.make_instruction(branch)
                    self.undo_log.perform(AddInstructionAction(editor_instruction, index, group))
                    self.undo_log.perform(BranchTargetChangeAction(created[target_gid], editor_instruction, group, self))
                    index += 1
                if data.fallthrough is not None:
                    editor_instruction = self.make_instruction(ControlInstruction(ControlKind.JUMP, offset=1))
                    self.undo_log.perform(AddInstructionAction(editor_instruction, index, group))
                    self.undo_log.perform(BranchTargetChangeAction(created[data.fallthrough], editor_instruction, group, self))

            if created and self._start_group is None:
                self.undo_log.perform(MarkGroupAsStartAction(created[0], self))

        logger.info("Loaded flow into document", groups=len(created))
        return created

    def compile(self) -> List[Any]:
        """Emit the flat flow: start group first, then the other live groups in order."""
        if self._start_group is None or not self.is_live(self._start_group):
            raise CompileError("No start group specified.")

        ordered = [self._groups[self._start_group]]
        ordered.extend(g for g in self.groups if g.id != self._start_group)

        start_indices: Dict[int, int] = {}
        index = 0
        for group in ordered:
            start_indices[group.id] = index
            index += len(group.instructions)

        compiled: List[Any] = []
        index = 0
        for group in ordered:
            for instruction in group.instructions:
                if instruction.is_branch:
                    target = instruction.target
                    if target is not None and target in start_indices:
                        exported = instruction.export(start_indices[target] - index)
                    else:
                        exported = instruction.export(None)
                        logger.warning("Removed branch because there was no target", group_id=group.id)
                else:
                    exported = instruction.export()
                compiled.extend(exported)
                index += len(exported)
        return compiled
