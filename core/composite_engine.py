"""
Composite engine: rotation -> flip -> crop in one deterministic render.

The drawing model matches a 2D canvas: translate to the working canvas
center, rotate clockwise by the rotation angle, scale by (+/-1, +/-1) for the
flips, and draw the source centered at the origin. Because the flip scale is
applied after the rotation in that chain, it acts on the source first.

Stateless: each render is a pure function of its inputs. The source buffer is
never mutated and the output buffer is always freshly allocated.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from core.constants import ErrorMessages
from core.exceptions import (
    DegenerateCropError,
    InvalidDimensionsError,
    InvalidSourceBufferError,
)
from core.geometry_engine import round_half_up
from schemas import CropRect, Size, TransformState

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Output of a render call"""

    image: np.ndarray
    canvas_size: Tuple[int, int]  # (width, height) of the rotated working canvas
    crop: Optional[CropRect]  # Crop actually applied (clamped), None if uncropped
    degenerate_crop: bool = False

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def size(self) -> Size:
        return Size(width=self.width, height=self.height)


def working_canvas_size(natural_size: Size, rotation_degrees: float) -> Tuple[int, int]:
    """
    Size of the canvas that receives the rotated image.

    Width and height are swapped whenever the rotation is not a multiple of 180.

    Returns:
        (width, height) in pixels
    """
    width = round_half_up(natural_size.width)
    height = round_half_up(natural_size.height)
    if rotation_degrees % 180 != 0:
        return height, width
    return width, height


def clamp_crop_to_canvas(crop: CropRect, canvas_width: int, canvas_height: int) -> CropRect:
    """Clamp a source-space crop against the working canvas (may become empty)."""
    return crop.clip(canvas_width, canvas_height)


def validate_source(source: np.ndarray, natural_size: Optional[Size] = None) -> Size:
    """
    Check that the source buffer is a readable, non-empty image.

    Args:
        source: Pixel buffer (H x W or H x W x C)
        natural_size: Expected natural dimensions, defaults to the buffer's

    Returns:
        Natural size of the source

    Raises:
        InvalidSourceBufferError: If the buffer is not a usable image
        InvalidDimensionsError: If natural_size has a non-positive component
    """
    if not isinstance(source, np.ndarray):
        raise InvalidSourceBufferError(
            ErrorMessages.INVALID_SOURCE_BUFFER.format(
                reason=f"expected numpy array, got {type(source).__name__}"
            )
        )

    if source.ndim not in (2, 3) or (source.ndim == 3 and source.shape[2] not in (1, 3, 4)):
        raise InvalidSourceBufferError(
            ErrorMessages.INVALID_SOURCE_BUFFER.format(reason=f"unsupported shape {source.shape}"),
            {"shape": list(source.shape)},
        )

    buffer_height, buffer_width = source.shape[:2]
    if buffer_width == 0 or buffer_height == 0:
        raise InvalidSourceBufferError(
            ErrorMessages.INVALID_SOURCE_BUFFER.format(reason="zero-dimension buffer"),
            {"shape": list(source.shape)},
        )

    if natural_size is None:
        return Size(width=buffer_width, height=buffer_height)

    if not natural_size.is_positive:
        raise InvalidDimensionsError(
            ErrorMessages.INVALID_DIMENSIONS.format(
                name="natural", width=natural_size.width, height=natural_size.height
            ),
            {"width": natural_size.width, "height": natural_size.height},
        )

    expected = (round_half_up(natural_size.width), round_half_up(natural_size.height))
    if expected != (buffer_width, buffer_height):
        raise InvalidSourceBufferError(
            ErrorMessages.INVALID_SOURCE_BUFFER.format(
                reason=(
                    f"buffer is {buffer_width}x{buffer_height}, expected "
                    f"{natural_size.width:g}x{natural_size.height:g}"
                )
            )
        )

    return natural_size


def _is_right_angle(rotation_degrees: float) -> bool:
    return rotation_degrees % 90 == 0


def _draw_right_angle(image: np.ndarray, transform: TransformState) -> np.ndarray:
    """Exact pixel permutation for rotations that are multiples of 90 degrees."""
    if transform.flip_horizontal:
        image = np.flip(image, axis=1)
    if transform.flip_vertical:
        image = np.flip(image, axis=0)

    quarter_turns = int(transform.rotation_degrees // 90) % 4
    # Canvas rotation is clockwise in y-down coordinates; np.rot90 is counterclockwise
    return np.rot90(image, k=-quarter_turns)


def compose_matrix(
    natural_size: Tuple[int, int], canvas_size: Tuple[int, int], transform: TransformState
) -> np.ndarray:
    """
    Forward 2x3 affine matrix mapping source pixel centers to canvas pixel centers.

    canvas = T(canvas center) . R(rotation) . S(flip) . T(-source center) . source
    """
    width, height = natural_size
    canvas_width, canvas_height = canvas_size

    radians = transform.rotation_degrees * math.pi / 180
    cos_a = math.cos(radians)
    sin_a = math.sin(radians)
    rotation = np.array([[cos_a, -sin_a], [sin_a, cos_a]], dtype=np.float64)
    scale = np.diag(
        [
            -1.0 if transform.flip_horizontal else 1.0,
            -1.0 if transform.flip_vertical else 1.0,
        ]
    )
    linear = rotation @ scale

    source_center = np.array([(width - 1) / 2, (height - 1) / 2])
    canvas_center = np.array([(canvas_width - 1) / 2, (canvas_height - 1) / 2])
    translation = canvas_center - linear @ source_center

    return np.hstack([linear, translation.reshape(2, 1)])


def _draw_arbitrary_angle(
    image: np.ndarray, canvas_size: Tuple[int, int], transform: TransformState
) -> np.ndarray:
    """Resampled rotation for continuous slider angles; uncovered canvas stays zero."""
    height, width = image.shape[:2]
    matrix = compose_matrix((width, height), canvas_size, transform)

    try:
        canvas = cv2.warpAffine(
            image,
            matrix,
            canvas_size,
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )
    except cv2.error as e:
        logger.error(f"Failed to rotate source buffer: {e}")
        raise InvalidSourceBufferError(
            ErrorMessages.INVALID_SOURCE_BUFFER.format(reason=str(e)),
            {"dtype": str(image.dtype)},
        ) from e

    # OpenCV drops a trailing single channel
    if image.ndim == 3 and canvas.ndim == 2:
        canvas = canvas[:, :, np.newaxis]
    return canvas


class CompositeEngine:
    """
    Renders rotation, flip and crop into a single output buffer.

    Owns no state; all methods are static.
    """

    @staticmethod
    def draw_working_canvas(
        source: np.ndarray, natural_size: Size, transform: TransformState
    ) -> np.ndarray:
        """
        Draw the rotated and flipped source onto its working canvas.

        Returns:
            Canvas buffer (may be a view of the source for right angles)
        """
        canvas_size = working_canvas_size(natural_size, transform.rotation_degrees)

        if _is_right_angle(transform.rotation_degrees):
            return _draw_right_angle(source, transform)
        return _draw_arbitrary_angle(source, canvas_size, transform)

    @staticmethod
    def render(
        source: np.ndarray,
        natural_size: Optional[Size] = None,
        transform: Optional[TransformState] = None,
        crop: Optional[CropRect] = None,
        safe_mode: bool = True,
    ) -> RenderResult:
        """
        Apply rotation, then flip, then crop to the source buffer.

        Args:
            source: Source pixel buffer (read only)
            natural_size: Source natural size, defaults to the buffer's shape
            transform: Rotation and flips, defaults to identity
            crop: Optional crop rectangle in working-canvas pixel space
            safe_mode: If True, a crop that collapses after clamping falls back to
                the full working canvas and is flagged; if False it raises

        Returns:
            RenderResult; read the output dimensions from it, they differ from
            natural_size whenever rotation or crop applies

        Raises:
            InvalidSourceBufferError: Unusable source buffer
            InvalidDimensionsError: Non-positive natural size
            DegenerateCropError: Empty crop after clamping (safe_mode=False only)
        """
        natural_size = validate_source(source, natural_size)
        transform = transform or TransformState()

        canvas_width, canvas_height = working_canvas_size(
            natural_size, transform.rotation_degrees
        )
        canvas = CompositeEngine.draw_working_canvas(source, natural_size, transform)
        canvas_size = (canvas_width, canvas_height)

        if crop is None or crop.is_empty:
            return RenderResult(image=canvas.copy(), canvas_size=canvas_size, crop=None)

        clamped = clamp_crop_to_canvas(crop, canvas_width, canvas_height)

        if clamped.is_empty:
            message = ErrorMessages.DEGENERATE_CROP.format(
                crop=crop.to_dict(), width=canvas_width, height=canvas_height
            )
            if not safe_mode:
                raise DegenerateCropError(
                    message, {"crop": crop.to_dict(), "canvas": list(canvas_size)}
                )
            logger.warning(f"{message}; rendering the full canvas instead")
            return RenderResult(
                image=canvas.copy(), canvas_size=canvas_size, crop=None, degenerate_crop=True
            )

        if clamped != crop:
            logger.debug(f"Crop {crop.to_dict()} clamped to {clamped.to_dict()}")

        output = canvas[clamped.y : clamped.bottom, clamped.x : clamped.right].copy()
        return RenderResult(image=output, canvas_size=canvas_size, crop=clamped)
