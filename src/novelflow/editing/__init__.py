"""novelflow.editing

Undo log, undoable actions and the group tracker.
"""

from .actions import (
    AddGroupAction,
    AddInstructionAction,
    BranchTargetChangeAction,
    EditLineAction,
    InverseBeforePerformError,
    MarkGroupAsStartAction,
    RemoveGroupAction,
    RemoveInstructionAction,
)
from .tracker import GroupTracker
from .undo import UndoableAction, UndoGroupDepthError, UndoLog

__all__ = [
    "UndoLog",
    "UndoableAction",
    "UndoGroupDepthError",
    "InverseBeforePerformError",
    "AddGroupAction",
    "RemoveGroupAction",
    "AddInstructionAction",
    "RemoveInstructionAction",
    "EditLineAction",
    "MarkGroupAsStartAction",
    "BranchTargetChangeAction",
    "GroupTracker",
]
