"""novelflow.document.group

Instruction group editor.

A group holds an ordered list of `EditorInstruction`s and the rendered lines
of those instructions, in the same order. Plain instructions lead; branch
instructions (branch/jump, each with an optional target group) trail.

Everything that changes a group's instructions, lines or parent/child ids is
done by an `UndoableAction` (`novelflow.editing.actions`); the underscore
attributes below are for those actions only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.config import EditorConfig
from ..core.models import (
    ControlInstruction,
    ControlKind,
    Instruction,
    PlainInstruction,
    instruction_to_json,
    is_control_transfer,
    is_end,
    is_jump,
    load_instruction,
)

LineRenderer = Callable[[Instruction], Sequence[str]]


@dataclass(eq=False)
class InstructionLine:
    """One rendered line. Compared and hashed by identity."""

    text: str = ""


def render_instruction_lines(instruction: Instruction) -> List[str]:
    """Default renderer: one line per instruction, multi-line strings split."""
    if isinstance(instruction, ControlInstruction):
        if instruction.offset is None:
            return [instruction.kind.value]
        return [f"{instruction.kind.value} {instruction.offset:+d}"]
    payload = instruction.payload
    if isinstance(payload, str):
        return payload.splitlines() or [""]
    return [json.dumps(payload, ensure_ascii=False, sort_keys=True)]


@dataclass(eq=False)
class EditorInstruction:
    """An instruction placed in a group, with its rendered lines.

    `target` is the id of the group a branch/jump transfers to (None when
    unset). It is changed only by `BranchTargetChangeAction`.
    """

    instruction: Instruction
    lines: List[InstructionLine] = field(default_factory=list)
    _target: Optional[int] = None

    @classmethod
    def create(cls, raw: Any, *, renderer: LineRenderer = render_instruction_lines) -> "EditorInstruction":
        instruction = load_instruction(raw)
        lines = [InstructionLine(text=t) for t in renderer(instruction)]
        if not lines:
            lines = [InstructionLine(text="")]
        return cls(instruction=instruction, lines=lines)

    @property
    def target(self) -> Optional[int]:
        return self._target

    @property
    def is_branch(self) -> bool:
        return is_control_transfer(self.instruction)

    @property
    def is_always_jump(self) -> bool:
        return is_jump(self.instruction)

    @property
    def is_end(self) -> bool:
        return is_end(self.instruction)

    def parse_lines(self, texts: Optional[Sequence[str]] = None) -> Instruction:
        """Rebuild a plain instruction from line texts (default: its current lines).

        String payloads are the lines joined by newlines; other payloads are
        read back from the single JSON line. Control lines are not editable.
        """
        if self.is_branch or not isinstance(self.instruction, PlainInstruction):
            raise ValueError("Only plain instruction lines can be edited")
        if texts is None:
            texts = [line.text for line in self.lines]
        if isinstance(self.instruction.payload, str):
            return PlainInstruction("\n".join(texts))
        if len(texts) != 1:
            raise ValueError("Cannot read a structured payload back from several lines")
        parsed = load_instruction(json.loads(texts[0]))
        if not isinstance(parsed, PlainInstruction):
            raise ValueError("Edited line would turn a plain instruction into a control instruction")
        return parsed

    def serialize(self) -> Any:
        return instruction_to_json(self.instruction)

    def export(self, offset: Optional[int] = None) -> List[Any]:
        """Flow items for this instruction; branches need the resolved offset."""
        if not self.is_branch:
            return [instruction_to_json(self.instruction)]
        if offset is None:
            return [{"ctrl": ControlKind.NOP.value}]
        return [instruction_to_json(self.instruction.with_offset(offset))]  # type: ignore[union-attr]


class GroupEditor:
    def __init__(
        self,
        group_id: int,
        *,
        config: Optional[EditorConfig] = None,
        x: float = 0,
        y: float = 0,
    ) -> None:
        self.id = group_id
        self.config = config or EditorConfig()
        self.x = x
        self.y = y
        self.width = self.config.group_width
        self.is_start = False

        # DO NOT MUTATE OUTSIDE `UndoableAction`
        self.parents: List[int] = []
        self.children: List[int] = []
        self._instructions: List[EditorInstruction] = []
        self._lines: List[InstructionLine] = []
        self._line_owner: Dict[InstructionLine, EditorInstruction] = {}

        self.height = self.config.group_height(0)

    def __repr__(self) -> str:
        return f"GroupEditor(id={self.id}, instructions={len(self._instructions)}, lines={len(self._lines)})"

    @property
    def instructions(self) -> List[EditorInstruction]:
        return list(self._instructions)

    @property
    def lines(self) -> List[InstructionLine]:
        return list(self._lines)

    @property
    def num_lines(self) -> int:
        return len(self._lines)

    def get_instruction(self, index: int) -> EditorInstruction:
        return self._instructions[index]

    def index_of(self, instruction: EditorInstruction) -> int:
        for i, candidate in enumerate(self._instructions):
            if candidate is instruction:
                return i
        raise ValueError("Instruction is not in this group")

    def plain_instructions(self) -> List[EditorInstruction]:
        return [i for i in self._instructions if not i.is_branch]

    def branch_instructions(self) -> List[EditorInstruction]:
        return [i for i in self._instructions if i.is_branch]

    def first_branch_index(self) -> int:
        """Index of the first branch instruction (or the instruction count)."""
        for i, instruction in enumerate(self._instructions):
            if instruction.is_branch:
                return i
        return len(self._instructions)

    def owner_of(self, line: InstructionLine) -> EditorInstruction:
        return self._line_owner[line]

    def locate_line(self, line: InstructionLine) -> int:
        for i, candidate in enumerate(self._lines):
            if candidate is line:
                return i
        raise ValueError("Line is not in this group")

    def update_height(self) -> None:
        self.height = self.config.group_height(len(self._lines))

    def first_other_child(self) -> Optional[int]:
        """First child that is not this group itself (where incoming edges reroute on removal)."""
        for child in self.children:
            if child != self.id:
                return child
        return None
