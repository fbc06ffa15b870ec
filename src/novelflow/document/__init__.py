from .document import CompileError, Document
from .group import EditorInstruction, GroupEditor, InstructionLine, render_instruction_lines
from .save_data import EditorSaveData, GroupSaveData, SaveDataError, deserialize_document, serialize_document

__all__ = [
    "CompileError",
    "Document",
    "EditorInstruction",
    "GroupEditor",
    "InstructionLine",
    "render_instruction_lines",
    "EditorSaveData",
    "GroupSaveData",
    "SaveDataError",
    "deserialize_document",
    "serialize_document",
]
