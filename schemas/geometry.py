"""
Display-space geometry models for the crop editor.

This module contains:
- DisplayMapping: how a natural-size image is fitted inside its container
- CropBox: the interactive crop rectangle in display space
"""

from pydantic import BaseModel, ConfigDict

from .common import Point, Size


class DisplayMapping(BaseModel):
    """
    Fit of an image inside its container.

    The display size keeps the natural aspect ratio and is the largest size
    fitting in the container; the offset centers it. Always replaced as a
    whole so offset and display size stay consistent.
    """

    model_config = ConfigDict(frozen=True)

    natural_size: Size
    container_size: Size
    display_size: Size
    offset: Point

    @property
    def scale_x(self) -> float:
        """Source pixels per display unit along x."""
        return self.natural_size.width / self.display_size.width

    @property
    def scale_y(self) -> float:
        """Source pixels per display unit along y."""
        return self.natural_size.height / self.display_size.height

    @property
    def min_x(self) -> float:
        return self.offset.x

    @property
    def min_y(self) -> float:
        return self.offset.y

    @property
    def max_x(self) -> float:
        return self.offset.x + self.display_size.width

    @property
    def max_y(self) -> float:
        return self.offset.y + self.display_size.height


class CropBox(BaseModel):
    """Crop rectangle in display space (position is the top-left corner)"""

    model_config = ConfigDict(frozen=True)

    position: Point
    size: Size

    @classmethod
    def from_rect(cls, x: float, y: float, width: float, height: float) -> "CropBox":
        return cls(position=Point(x=x, y=y), size=Size(width=width, height=height))

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def y(self) -> float:
        return self.position.y

    @property
    def width(self) -> float:
        return self.size.width

    @property
    def height(self) -> float:
        return self.size.height

    @property
    def right(self) -> float:
        return self.position.x + self.size.width

    @property
    def bottom(self) -> float:
        return self.position.y + self.size.height

