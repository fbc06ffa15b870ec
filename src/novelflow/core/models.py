"""novelflow.core.models

Instruction model for compiled flows.

A flow is a flat list of instructions. Each one is either:
- a `PlainInstruction` (domain payload, e.g. "say this line"), opaque here;
- a `ControlInstruction` (`branch`/`jump` with a relative offset, or `nop`/`end`).

Wire format (FlowData JSON):

    {"flow": [<payload>, {"ctrl": "branch", "offset": 2}, {"ctrl": "end"}, ...]}

Control dicts whose `ctrl` is not one of the four kinds handled here (the
runtime also knows `input`, `variable`, ...) are kept as plain payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class FlowFormatError(ValueError):
    """Raised when FlowData JSON contains a malformed control instruction."""


class ControlKind(str, Enum):
    BRANCH = "branch"
    JUMP = "jump"
    NOP = "nop"
    END = "end"


_OFFSET_KINDS = frozenset({ControlKind.BRANCH, ControlKind.JUMP})


@dataclass(frozen=True)
class PlainInstruction:
    payload: Any = None


@dataclass(frozen=True)
class ControlInstruction:
    kind: ControlKind
    offset: Optional[int] = None
    # Extra JSON fields carried through untouched (e.g. branch conditions).
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        kind = self.kind if isinstance(self.kind, ControlKind) else ControlKind(str(self.kind))
        object.__setattr__(self, "kind", kind)
        if kind in _OFFSET_KINDS:
            if isinstance(self.offset, bool) or not isinstance(self.offset, int):
                raise FlowFormatError(f"'{kind.value}' requires an integer offset, got {self.offset!r}")
        elif self.offset is not None:
            raise FlowFormatError(f"'{kind.value}' does not take an offset")

    @property
    def transfers_control(self) -> bool:
        return self.kind in _OFFSET_KINDS

    def target_index(self, index: int) -> int:
        if self.offset is None:
            raise FlowFormatError(f"'{self.kind.value}' has no target")
        return index + self.offset

    def with_offset(self, offset: int) -> "ControlInstruction":
        return ControlInstruction(kind=self.kind, offset=offset, extra=dict(self.extra))


Instruction = Union[PlainInstruction, ControlInstruction]


def is_control_transfer(instruction: Instruction) -> bool:
    return isinstance(instruction, ControlInstruction) and instruction.transfers_control


def is_jump(instruction: Instruction) -> bool:
    return isinstance(instruction, ControlInstruction) and instruction.kind is ControlKind.JUMP


def is_end(instruction: Instruction) -> bool:
    return isinstance(instruction, ControlInstruction) and instruction.kind is ControlKind.END


def _control_kind_of(raw: Any) -> Optional[ControlKind]:
    if not isinstance(raw, dict):
        return None
    ctrl = raw.get("ctrl")
    if not isinstance(ctrl, str):
        return None
    try:
        return ControlKind(ctrl)
    except ValueError:
        return None


def load_instruction(raw: Any) -> Instruction:
    """Parse one FlowData item into an Instruction."""
    if isinstance(raw, (PlainInstruction, ControlInstruction)):
        return raw
    kind = _control_kind_of(raw)
    if kind is None:
        return PlainInstruction(payload=raw)
    extra = {k: v for k, v in raw.items() if k not in ("ctrl", "offset")}
    if kind in _OFFSET_KINDS:
        if "offset" not in raw:
            raise FlowFormatError(f"'{kind.value}' instruction missing 'offset'")
        return ControlInstruction(kind=kind, offset=raw["offset"], extra=extra)
    return ControlInstruction(kind=kind, extra=extra)


def instruction_to_json(instruction: Instruction) -> Any:
    if isinstance(instruction, PlainInstruction):
        return instruction.payload
    out: Dict[str, Any] = {"ctrl": instruction.kind.value}
    if instruction.offset is not None:
        out["offset"] = instruction.offset
    for k, v in instruction.extra.items():
        out.setdefault(k, v)
    return out


@dataclass(frozen=True)
class FlowData:
    flow: List[Instruction] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return flow_to_json(self.flow)


def load_flow_json(raw: Any) -> FlowData:
    """Parse FlowData JSON (`{"flow": [...]}`) or a bare instruction list."""
    if isinstance(raw, FlowData):
        return raw
    items = raw.get("flow") if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        raise FlowFormatError("FlowData must be an object with a 'flow' list")
    return FlowData(flow=[load_instruction(item) for item in items])


def flow_to_json(flow: List[Instruction]) -> Dict[str, Any]:
    return {"flow": [instruction_to_json(i) for i in flow]}
