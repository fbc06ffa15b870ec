"""novelflow.document.save_data

Editor save data (the document's on-disk form).

    {
      "startGroup": 0,
      "elms": [
        {"id": 0, "x": 8, "y": 24,
         "instructions": [...], "branches": [{"ctrl": "jump", "offset": 1}],
         "children": [1], "parents": []}
      ]
    }

Ids are assigned in live document order when serializing; they are not the
in-memory arena ids. `children[k]` is the id targeted by `branches[k]` (null
when the branch has no target). `parents` is informational and is rebuilt
from `children` on load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..core.models import FlowFormatError, is_control_transfer, load_instruction
from ..editing.actions import AddGroupAction, AddInstructionAction, BranchTargetChangeAction, MarkGroupAsStartAction
from ..logging import get_logger

if TYPE_CHECKING:
    from .document import Document
    from .group import GroupEditor

logger = get_logger(__name__)


class SaveDataError(ValueError):
    """Raised when editor save data is malformed."""


@dataclass(frozen=True)
class GroupSaveData:
    id: int
    x: float = 0
    y: float = 0
    instructions: List[Any] = field(default_factory=list)
    branches: List[Any] = field(default_factory=list)
    children: List[Optional[int]] = field(default_factory=list)
    parents: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "instructions": list(self.instructions),
            "branches": list(self.branches),
            "children": list(self.children),
            "parents": list(self.parents),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GroupSaveData":
        if not isinstance(raw, dict):
            raise SaveDataError("Group save data must be an object")
        gid = raw.get("id")
        if isinstance(gid, bool) or not isinstance(gid, int):
            raise SaveDataError(f"Group id must be an integer, got {gid!r}")

        for key in ("instructions", "branches", "children", "parents"):
            value = raw.get(key, [])
            if not isinstance(value, list):
                raise SaveDataError(f"Group {gid}: '{key}' must be a list")

        return cls(
            id=gid,
            x=raw.get("x", 0) or 0,
            y=raw.get("y", 0) or 0,
            instructions=list(raw.get("instructions") or []),
            branches=list(raw.get("branches") or []),
            children=list(raw.get("children") or []),
            parents=list(raw.get("parents") or []),
        )


@dataclass(frozen=True)
class EditorSaveData:
    elms: List[GroupSaveData] = field(default_factory=list)
    start_group: Optional[int] = None

    def validate(self) -> None:
        ids = [elm.id for elm in self.elms]
        if len(set(ids)) != len(ids):
            raise SaveDataError("Duplicate group ids in save data")
        known = set(ids)

        if self.start_group is not None and self.start_group not in known:
            raise SaveDataError(f"startGroup {self.start_group} does not name a group")

        for elm in self.elms:
            if len(elm.children) != len(elm.branches):
                raise SaveDataError(
                    f"Group {elm.id}: {len(elm.branches)} branches but {len(elm.children)} children"
                )
            for branch in elm.branches:
                try:
                    instruction = load_instruction(branch)
                except FlowFormatError as e:
                    raise SaveDataError(f"Group {elm.id}: {e}") from e
                if not is_control_transfer(instruction):
                    raise SaveDataError(f"Group {elm.id}: branch {branch!r} is not a branch or jump")
            for child in elm.children:
                if child is not None and child not in known:
                    raise SaveDataError(f"Group {elm.id}: child {child!r} does not name a group")
            for parent in elm.parents:
                if parent not in known:
                    raise SaveDataError(f"Group {elm.id}: parent {parent!r} does not name a group")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"elms": [elm.to_dict() for elm in self.elms]}
        if self.start_group is not None:
            out["startGroup"] = self.start_group
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "EditorSaveData":
        if not isinstance(raw, dict):
            raise SaveDataError("Editor save data must be a JSON object")
        elms_raw = raw.get("elms", [])
        if not isinstance(elms_raw, list):
            raise SaveDataError("'elms' must be a list")

        start = raw.get("startGroup", raw.get("start_group"))
        if start is not None and (isinstance(start, bool) or not isinstance(start, int)):
            raise SaveDataError(f"startGroup must be an integer, got {start!r}")

        data = cls(elms=[GroupSaveData.from_dict(e) for e in elms_raw], start_group=start)
        data.validate()
        return data


def _serialize_group(group: "GroupEditor", ids: Dict[int, int]) -> GroupSaveData:
    instructions: List[Any] = []
    branches: List[Any] = []
    children: List[Optional[int]] = []
    for instruction in group.instructions:
        if instruction.is_branch:
            branches.append(instruction.serialize())
            target = instruction.target
            children.append(ids.get(target) if target is not None else None)
        else:
            instructions.append(instruction.serialize())
    return GroupSaveData(
        id=ids[group.id],
        x=round(group.x),
        y=round(group.y),
        instructions=instructions,
        branches=branches,
        children=children,
        parents=[ids[p] for p in group.parents if p in ids],
    )


def serialize_document(document: "Document") -> EditorSaveData:
    ids = {gid: i for i, gid in enumerate(document.group_ids)}
    start = document.start_group
    return EditorSaveData(
        elms=[_serialize_group(group, ids) for group in document.groups],
        start_group=ids.get(start.id) if start is not None else None,
    )


def deserialize_document(data: EditorSaveData, document: "Document") -> List["GroupEditor"]:
    """Append the saved groups to `document` without recording undo history."""
    data.validate()
    undo_log = document.undo_log
    created: Dict[int, "GroupEditor"] = {}

    with undo_log.frozen_scope():
        for elm in data.elms:
            group = document.new_group(x=elm.x, y=elm.y)
            undo_log.perform(AddGroupAction(group, document))
            created[elm.id] = group

        for elm in data.elms:
            group = created[elm.id]
            index = 0
            for raw in elm.instructions:
                undo_log.perform(AddInstructionAction(document.make_instruction(raw), index, group))
                index += 1
            for raw, child in zip(elm.branches, elm.children):
                instruction = document.make_instruction(raw)
                undo_log.perform(AddInstructionAction(instruction, index, group))
                if child is not None:
                    undo_log.perform(BranchTargetChangeAction(created[child], instruction, group, document))
                index += 1

        if data.start_group is not None:
            undo_log.perform(MarkGroupAsStartAction(created[data.start_group], document))

    logger.info("Loaded editor save data", groups=len(created))
    return [created[elm.id] for elm in data.elms]


__all__ = [
    "EditorSaveData",
    "GroupSaveData",
    "SaveDataError",
    "deserialize_document",
    "serialize_document",
]
