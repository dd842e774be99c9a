"""
Enumerations shared across the image editor.
"""

from enum import Enum


class ResizeEdge(str, Enum):
    """Crop box resize handles (corners)."""

    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"

    @property
    def moves_left(self) -> bool:
        return self in (ResizeEdge.TOP_LEFT, ResizeEdge.BOTTOM_LEFT)

    @property
    def moves_top(self) -> bool:
        return self in (ResizeEdge.TOP_LEFT, ResizeEdge.TOP_RIGHT)


class InteractionState(str, Enum):
    """Pointer interaction state of the crop box."""

    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class EditMode(str, Enum):
    """Editor modes that change what the preview shows."""

    CROP = "crop"
