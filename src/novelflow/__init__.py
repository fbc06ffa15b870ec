"""
novelflow

Flow editor core for visual novel scripts.

This package provides the editing substrate behind a node-based flow editor:
- flow graph reconstruction (flat compiled flow → instruction groups)
- an editable document of groups with exact, grouped undo
- save data and compilation back to a flat flow

Rendering, cursors and input handling are expected to live in the host UI.
"""

from .core.config import EditorConfig
from .core.models import (
    ControlInstruction,
    ControlKind,
    FlowData,
    FlowFormatError,
    PlainInstruction,
    load_flow_json,
)
from .graph.builder import FlowOffsetError, InstructionGroup, build_graph
from .editing.undo import UndoableAction, UndoGroupDepthError, UndoLog
from .editing.actions import InverseBeforePerformError
from .document.document import CompileError, Document
from .document.save_data import EditorSaveData, SaveDataError, deserialize_document, serialize_document
from .logging import configure_logging, get_logger

__all__ = [
    # Models
    "ControlInstruction",
    "ControlKind",
    "FlowData",
    "FlowFormatError",
    "PlainInstruction",
    "load_flow_json",
    # Config
    "EditorConfig",
    # Graph
    "FlowOffsetError",
    "InstructionGroup",
    "build_graph",
    # Undo
    "UndoLog",
    "UndoableAction",
    "UndoGroupDepthError",
    "InverseBeforePerformError",
    # Document
    "Document",
    "CompileError",
    "EditorSaveData",
    "SaveDataError",
    "serialize_document",
    "deserialize_document",
    # Logging
    "configure_logging",
    "get_logger",
]
