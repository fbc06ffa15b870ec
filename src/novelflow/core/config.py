"""novelflow.core.config

Editor layout configuration.

The row height is a rendering constant, not a document property: the flow
graph builder uses it to stack reconstructed groups vertically and group
editors use it to compute their visible height.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_ROW_HEIGHT = 24


@dataclass(frozen=True)
class EditorConfig:
    """Layout constants shared by the builder and the group editors.

    Attributes:
        row_height: Height of one rendered instruction line (default: 24)
        group_padding: Vertical padding added to every group's height (default: 16)
        group_width: Width of a group editor (default: 744, 720 + 24 padding)
        new_group_x: x of the first group created in an empty document
        new_group_y: y of the first group created in an empty document

    Example:
        >>> config = EditorConfig().with_layout(row_height=32)
        >>> config.to_dict()["row_height"]
        32
    """

    row_height: int = DEFAULT_ROW_HEIGHT
    group_padding: int = 16
    group_width: int = 720 + 24

    new_group_x: float = 8
    new_group_y: float = 24

    def __post_init__(self) -> None:
        if self.row_height <= 0:
            raise ValueError(f"row_height must be positive, got {self.row_height}")
        if self.group_padding < 0:
            raise ValueError(f"group_padding must be non-negative, got {self.group_padding}")

    def group_height(self, line_count: int) -> int:
        return int(line_count) * self.row_height + self.group_padding

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_height": self.row_height,
            "group_padding": self.group_padding,
            "group_width": self.group_width,
            "new_group_x": self.new_group_x,
            "new_group_y": self.new_group_y,
        }

    def with_layout(
        self,
        *,
        row_height: Optional[int] = None,
        group_padding: Optional[int] = None,
        group_width: Optional[int] = None,
    ) -> "EditorConfig":
        """Create a new EditorConfig with some layout constants overridden."""
        return EditorConfig(
            row_height=self.row_height if row_height is None else row_height,
            group_padding=self.group_padding if group_padding is None else group_padding,
            group_width=self.group_width if group_width is None else group_width,
            new_group_x=self.new_group_x,
            new_group_y=self.new_group_y,
        )
