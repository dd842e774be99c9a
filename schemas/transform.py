"""
Transform state models.

TransformState is mutated only through its discrete operations (quarter
turns, flip toggles) or the continuous rotation slider. Each operation
returns a new state.
"""

from pydantic import BaseModel, ConfigDict, Field

from core.constants import EditorConstants


class TransformState(BaseModel):
    """Rotation and flip applied to the source image"""

    model_config = ConfigDict(frozen=True)

    rotation_degrees: float = Field(
        0.0,
        ge=EditorConstants.MIN_ROTATION,
        le=EditorConstants.MAX_ROTATION,
        description="Clockwise rotation in degrees (0-360)",
    )
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @property
    def is_identity(self) -> bool:
        """True when rendering would reproduce the source unchanged."""
        return (
            self.rotation_degrees % EditorConstants.FULL_TURN == 0
            and not self.flip_horizontal
            and not self.flip_vertical
        )

    def rotate_clockwise(self) -> "TransformState":
        """Rotate by +90 degrees (mod 360)."""
        rotation = (self.rotation_degrees + EditorConstants.ROTATION_STEP) % EditorConstants.FULL_TURN
        return self.model_copy(update={"rotation_degrees": rotation})

    def rotate_counter_clockwise(self) -> "TransformState":
        """Rotate by -90 degrees (mod 360)."""
        rotation = (
            self.rotation_degrees - EditorConstants.ROTATION_STEP + EditorConstants.FULL_TURN
        ) % EditorConstants.FULL_TURN
        return self.model_copy(update={"rotation_degrees": rotation})

    def with_rotation(self, degrees: float) -> "TransformState":
        """Set the rotation from the continuous slider, clamped to [0, 360]."""
        rotation = max(
            float(EditorConstants.MIN_ROTATION), min(float(degrees), float(EditorConstants.MAX_ROTATION))
        )
        return self.model_copy(update={"rotation_degrees": rotation})

    def toggle_flip_horizontal(self) -> "TransformState":
        return self.model_copy(update={"flip_horizontal": not self.flip_horizontal})

    def toggle_flip_vertical(self) -> "TransformState":
        return self.model_copy(update={"flip_vertical": not self.flip_vertical})
