from .config import DEFAULT_ROW_HEIGHT, EditorConfig
from .models import (
    ControlInstruction,
    ControlKind,
    FlowData,
    FlowFormatError,
    Instruction,
    PlainInstruction,
    flow_to_json,
    instruction_to_json,
    is_control_transfer,
    load_flow_json,
    load_instruction,
)

__all__ = [
    "DEFAULT_ROW_HEIGHT",
    "EditorConfig",
    "ControlInstruction",
    "ControlKind",
    "FlowData",
    "FlowFormatError",
    "Instruction",
    "PlainInstruction",
    "flow_to_json",
    "instruction_to_json",
    "is_control_transfer",
    "load_flow_json",
    "load_instruction",
]
