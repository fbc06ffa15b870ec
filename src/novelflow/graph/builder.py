"""novelflow.graph.builder

FlowData → instruction groups (the reverse of compilation).

A compiled flow is flat and offset-addressed. The editor works on groups of
consecutive instructions joined by control-flow edges. `build_graph` turns the
former into the latter:

- An instruction that is the target of a branch/jump always starts a group.
- Otherwise a plain instruction after a branch starts a group (the branch's
  not-taken path falls through into it).
- Branch/jump instructions are kept as the group's trailing `branches`; a
  `jump` (and an `end`) closes the group since control cannot fall past it.

Edges are resolved to groups, not instruction indices. A branch that lands on
an unconditional jump trailing another group's instructions is resolved
through it to the jump's destination. A jump that opens a group (first
instruction, or right after a `jump`/`end`) keeps its incoming edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

from ..core.config import DEFAULT_ROW_HEIGHT, EditorConfig
from ..core.models import (
    ControlInstruction,
    FlowData,
    Instruction,
    instruction_to_json,
    is_control_transfer,
    is_end,
    is_jump,
    load_instruction,
)
from ..logging import get_logger

logger = get_logger(__name__)


class FlowOffsetError(ValueError):
    """Raised when a branch/jump offset points outside the flow."""


@dataclass
class InstructionGroup:
    """One reconstructed group.

    `parents`/`children` hold group ids (positions in the builder output) and
    never contain duplicates. `branch_targets[k]` is the group id targeted by
    `branches[k]`; `fallthrough` is the id of the group reached by falling off
    the end of this one, if any.
    """

    id: int
    instructions: List[Instruction] = field(default_factory=list)
    branches: List[ControlInstruction] = field(default_factory=list)
    parents: List[int] = field(default_factory=list)
    children: List[int] = field(default_factory=list)
    branch_targets: List[int] = field(default_factory=list)
    fallthrough: Optional[int] = None
    x: float = 0
    y: float = 0

    @property
    def size(self) -> int:
        return len(self.instructions) + len(self.branches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "instructions": [instruction_to_json(i) for i in self.instructions],
            "branches": [instruction_to_json(b) for b in self.branches],
            "branch_targets": list(self.branch_targets),
            "fallthrough": self.fallthrough,
            "parents": list(self.parents),
            "children": list(self.children),
        }


@dataclass
class _OpenGroup:
    instructions: List[Instruction] = field(default_factory=list)
    branches: List[ControlInstruction] = field(default_factory=list)
    branch_sources: List[int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.instructions and not self.branches


def _link(ids: List[int], gid: int) -> None:
    if gid not in ids:
        ids.append(gid)


def _opens_group(items: Sequence[Instruction], index: int) -> bool:
    if index == 0:
        return True
    previous = items[index - 1]
    return is_jump(previous) or is_end(previous)


def _resolve_target(items: Sequence[Instruction], index: int) -> int:
    seen: Set[int] = set()
    while is_jump(items[index]) and not _opens_group(items, index) and index not in seen:
        seen.add(index)
        index = items[index].target_index(index)  # type: ignore[union-attr]
    return index


def _collect_edges(items: Sequence[Instruction]) -> Dict[int, int]:
    """Map each branch/jump index to its resolved target index (validated)."""
    n = len(items)
    raw: Dict[int, int] = {}
    for i, ins in enumerate(items):
        if not is_control_transfer(ins):
            continue
        target = ins.target_index(i)  # type: ignore[union-attr]
        if not 0 <= target < n:
            raise FlowOffsetError(
                f"Instruction {i} ({ins.kind.value} {ins.offset:+d}) targets {target}, outside [0, {n})"  # type: ignore[union-attr]
            )
        raw[i] = target
    return {i: _resolve_target(items, t) for i, t in raw.items()}


def build_graph(
    flow: Union[FlowData, Iterable[Any]],
    *,
    row_height: Optional[int] = None,
    config: Optional[EditorConfig] = None,
) -> List[InstructionGroup]:
    """Reconstruct instruction groups from a flat flow.

    Args:
        flow: FlowData, or a sequence of Instructions / FlowData JSON items.
        row_height: Vertical space per instruction row (default: config or 24).
        config: Optional EditorConfig supplying the row height.

    Returns:
        Non-empty groups in flow order, ids equal to list positions, x=0 and
        y stacked by `row_height * group.size`.

    Raises:
        FlowOffsetError: a branch/jump points outside the flow.
    """
    raw_items = flow.flow if isinstance(flow, FlowData) else flow
    items: List[Instruction] = [load_instruction(i) for i in raw_items]
    if row_height is None:
        row_height = config.row_height if config is not None else DEFAULT_ROW_HEIGHT

    targets = _collect_edges(items)
    incoming = set(targets.values())

    groups: List[InstructionGroup] = []
    falls_through: List[bool] = []
    branch_sources: List[List[int]] = []
    group_of_index: Dict[int, int] = {}

    y = 0
    current = _OpenGroup()

    def close(fallthrough: bool) -> None:
        nonlocal current, y
        if current.is_empty():
            return
        group = InstructionGroup(
            id=len(groups),
            instructions=current.instructions,
            branches=current.branches,
            x=0,
            y=y,
        )
        groups.append(group)
        falls_through.append(fallthrough)
        branch_sources.append(current.branch_sources)
        y += row_height * group.size
        current = _OpenGroup()

    for i, ins in enumerate(items):
        transfer = is_control_transfer(ins)
        if i in incoming or (current.branches and not transfer):
            close(fallthrough=True)
        group_of_index[i] = len(groups)

        if transfer:
            current.branches.append(ins)  # type: ignore[arg-type]
            current.branch_sources.append(i)
            if is_jump(ins):
                close(fallthrough=False)
        else:
            current.instructions.append(ins)
            if is_end(ins):
                close(fallthrough=False)
    close(fallthrough=False)

    # Parents: branch/jump origins in origination order, fallthrough parent last.
    origins_by_target: Dict[int, List[int]] = {}
    for source in sorted(targets):
        target_gid = group_of_index[targets[source]]
        origins_by_target.setdefault(target_gid, []).append(group_of_index[source])

    for group in groups:
        for source in branch_sources[group.id]:
            target_gid = group_of_index[targets[source]]
            group.branch_targets.append(target_gid)
            _link(group.children, target_gid)
        if falls_through[group.id]:
            group.fallthrough = group.id + 1
            _link(group.children, group.id + 1)

        for origin in origins_by_target.get(group.id, []):
            _link(group.parents, origin)
        if group.id > 0 and falls_through[group.id - 1]:
            _link(group.parents, group.id - 1)

    logger.debug("Reconstructed flow graph", instructions=len(items), groups=len(groups))
    return groups


def graph_to_json(groups: Sequence[InstructionGroup]) -> List[Dict[str, Any]]:
    return [g.to_dict() for g in groups]
