"""
Common geometry models shared by every layer.

Display-space values (Point, Size) are real numbers; source-space crop
rectangles (CropRect) are integer pixel coordinates. All models are immutable:
operations return new instances.
"""

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """2D point in display-space pixels"""

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0


class Size(BaseModel):
    """Width/height pair (natural, container or display dimensions)"""

    model_config = ConfigDict(frozen=True)

    width: float
    height: float

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def is_positive(self) -> bool:
        return self.width > 0 and self.height > 0


class CropRect(BaseModel):
    """
    Crop rectangle in source-pixel space.

    Produced by projecting a display-space crop box through the display
    mapping, and consumed by the composite engine.
    """

    model_config = ConfigDict(frozen=True)

    x: int = Field(..., description="X coordinate")
    y: int = Field(..., description="Y coordinate")
    width: int = Field(..., ge=0, description="Width")
    height: int = Field(..., ge=0, description="Height")

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_corners(cls, x1: int, y1: int, x2: int, y2: int) -> "CropRect":
        """Build from top-left and bottom-right corners (x2 >= x1, y2 >= y1)."""
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def clip(self, image_width: int, image_height: int) -> "CropRect":
        """
        Clip to [0,0]-[image_width,image_height].

        A rectangle lying entirely outside the bounds collapses to zero width
        or height at the nearest edge.
        """
        left = max(0, min(self.x, image_width))
        top = max(0, min(self.y, image_height))
        right = max(left, min(self.right, image_width))
        bottom = max(top, min(self.bottom, image_height))

        return CropRect.from_corners(left, top, right, bottom)

    def is_within(self, image_width: int, image_height: int) -> bool:
        """Check if the rectangle lies fully inside [0,0]-[width,height]."""
        return self.x >= 0 and self.y >= 0 and self.right <= image_width and self.bottom <= image_height
