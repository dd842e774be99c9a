"""
Crop geometry engine.

Keeps a display-space crop box valid with respect to the displayed image and
projects it into source-pixel coordinates.

Two layers:
- Pure functions (compute_display_mapping, initialize_crop_box, move_crop_box,
  resize_crop_box, fit_crop_box, project_to_source_space) that take values
  and return new values.
- GeometryEngine, the single-writer owner of one editing session's mapping,
  crop box and pointer interaction state.

Interactive edits never raise; out-of-range input is clamped. Only load-time
shape violations (non-positive dimensions) are reported.
"""

import logging
import math
from typing import Optional, Tuple, Union

from core.constants import EditorConstants, ErrorMessages
from core.enums import InteractionState, ResizeEdge
from core.exceptions import InvalidDimensionsError
from schemas import CropBox, CropRect, DisplayMapping, Point, Size

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf (0.5 -> 1, 2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def _validate_size(size: Size, name: str) -> None:
    if not (size.width > 0 and size.height > 0):
        raise InvalidDimensionsError(
            ErrorMessages.INVALID_DIMENSIONS.format(
                name=name, width=size.width, height=size.height
            ),
            {"name": name, "width": size.width, "height": size.height},
        )


def compute_display_mapping(natural_size: Size, container_size: Size) -> DisplayMapping:
    """
    Fit the natural image inside the container (contain), centered.

    Args:
        natural_size: Image natural pixel dimensions
        container_size: Container dimensions in display units

    Returns:
        DisplayMapping with display size and centering offset

    Raises:
        InvalidDimensionsError: If either size has a non-positive component
    """
    _validate_size(natural_size, "natural")
    _validate_size(container_size, "container")

    image_ratio = natural_size.width / natural_size.height
    container_ratio = container_size.width / container_size.height

    if image_ratio > container_ratio:
        # Image is wider than container (relative to height)
        display_width = container_size.width
        display_height = container_size.width / image_ratio
    else:
        # Image is taller than container (relative to width)
        display_height = container_size.height
        display_width = container_size.height * image_ratio

    offset = Point(
        x=(container_size.width - display_width) / 2,
        y=(container_size.height - display_height) / 2,
    )

    return DisplayMapping(
        natural_size=natural_size,
        container_size=container_size,
        display_size=Size(width=display_width, height=display_height),
        offset=offset,
    )


def initialize_crop_box(
    mapping: DisplayMapping, ratio: float = EditorConstants.INITIAL_CROP_RATIO
) -> CropBox:
    """Centered square crop box with side ratio * min(display width, display height)."""
    display = mapping.display_size
    side = min(display.width, display.height) * ratio
    x = mapping.offset.x + (display.width - side) / 2
    y = mapping.offset.y + (display.height - side) / 2
    return CropBox.from_rect(x, y, side, side)


def _clamp_position(value: float, minimum: float, maximum: float) -> float:
    # maximum < minimum happens when the box is larger than the display;
    # the box is then pinned to the minimum.
    return max(minimum, min(value, max(minimum, maximum)))


def move_crop_box(current: CropBox, dx: float, dy: float, mapping: DisplayMapping) -> CropBox:
    """
    Translate the crop box, then clamp it fully inside the displayed image.

    The size never changes. If the box is wider (taller) than the display,
    it is pinned to the display's left (top) edge.
    """
    x = _clamp_position(current.x + dx, mapping.min_x, mapping.max_x - current.width)
    y = _clamp_position(current.y + dy, mapping.min_y, mapping.max_y - current.height)
    return CropBox(position=Point(x=x, y=y), size=current.size)


def _resize_axis(
    start: float,
    length: float,
    delta: float,
    moves_start: bool,
    lower: float,
    upper: float,
    min_size: float,
) -> Tuple[float, float]:
    """
    Resize one axis of the box, pinning the side that does not move.

    Returns:
        (new_start, new_length)
    """
    if moves_start:
        end = start + length
        new_length = max(min_size, length - delta)
        new_start = end - new_length
        if new_start < lower:
            # Shrink instead of shifting so the pinned end stays put
            new_start = lower
            new_length = end - lower
        return new_start, new_length

    new_length = max(min_size, length + delta)
    if start + new_length > upper:
        new_length = upper - start
    return start, new_length


def resize_crop_box(
    current: CropBox,
    edge: Union[ResizeEdge, str],
    dx: float,
    dy: float,
    mapping: DisplayMapping,
    min_size: float = EditorConstants.MIN_CROP_SIZE,
) -> CropBox:
    """
    Resize the crop box by dragging one of its corners.

    Only the two sides adjacent to the dragged corner move; the opposite corner
    is pinned. Width/height are floored at min_size. When the drag would push a
    side past the displayed image, that dimension is shrunk instead of moving
    the box, so the pinned corner never moves.

    Args:
        current: Current crop box
        edge: Corner being dragged
        dx: Horizontal pointer delta since the previous event
        dy: Vertical pointer delta since the previous event
        mapping: Current display mapping
        min_size: Minimum side length in display units

    Returns:
        New crop box
    """
    edge = ResizeEdge(edge)

    x, width = _resize_axis(
        current.x, current.width, dx, edge.moves_left, mapping.min_x, mapping.max_x, min_size
    )
    y, height = _resize_axis(
        current.y, current.height, dy, edge.moves_top, mapping.min_y, mapping.max_y, min_size
    )

    return CropBox.from_rect(x, y, width, height)


def fit_crop_box(current: CropBox, mapping: DisplayMapping) -> CropBox:
    """
    Revalidate an existing crop box against a new mapping.

    Used after a container resize or a change of the displayed image size.
    The box is not re-centered: its size is shrunk to at most the display
    size and its position is clamped into the display bounds.
    """
    size = Size(
        width=min(current.width, mapping.display_size.width),
        height=min(current.height, mapping.display_size.height),
    )
    if size != current.size:
        logger.debug(
            f"Crop box shrunk from {current.width:.1f}x{current.height:.1f} "
            f"to {size.width:.1f}x{size.height:.1f} to fit display"
        )
    return move_crop_box(CropBox(position=current.position, size=size), 0.0, 0.0, mapping)


def project_to_source_space(crop_box: CropBox, mapping: DisplayMapping) -> CropRect:
    """
    Convert a display-space crop box to source-pixel coordinates.

    Rounding happens only at this final step. The result always lies inside
    [0, 0]-[natural width, natural height].
    """
    natural_width = round_half_up(mapping.natural_size.width)
    natural_height = round_half_up(mapping.natural_size.height)
    scale_x = mapping.scale_x
    scale_y = mapping.scale_y

    src_x = min(natural_width, max(0, round_half_up((crop_box.x - mapping.offset.x) * scale_x)))
    src_y = min(natural_height, max(0, round_half_up((crop_box.y - mapping.offset.y) * scale_y)))
    src_width = max(0, min(natural_width - src_x, round_half_up(crop_box.width * scale_x)))
    src_height = max(0, min(natural_height - src_y, round_half_up(crop_box.height * scale_y)))

    return CropRect(x=src_x, y=src_y, width=src_width, height=src_height)


class GeometryEngine:
    """
    Owner of one editing session's display mapping and crop box.

    Single writer: the caller must serialize pointer events. Every mutation
    replaces the mapping or crop box with a new validated value.

    Pointer state machine:
        IDLE --pointer_down(edge=None)--> DRAGGING
        IDLE --pointer_down(edge)--> RESIZING(edge)
        DRAGGING/RESIZING --pointer_move--> same state (box updated)
        DRAGGING/RESIZING --pointer_up/pointer_leave--> IDLE
        IDLE --pointer_move--> IDLE (no-op)

    Pointer deltas are incremental: each delta is measured from the previous
    pointer event, not from where the drag started.
    """

    def __init__(
        self,
        min_crop_size: float = EditorConstants.MIN_CROP_SIZE,
        initial_crop_ratio: float = EditorConstants.INITIAL_CROP_RATIO,
    ):
        self.min_crop_size = min_crop_size
        self.initial_crop_ratio = initial_crop_ratio

        self.mapping: Optional[DisplayMapping] = None
        self.crop_box: Optional[CropBox] = None
        self.state = InteractionState.IDLE
        self.active_edge: Optional[ResizeEdge] = None

    @property
    def is_loaded(self) -> bool:
        return self.mapping is not None and self.crop_box is not None

    def _require_loaded(self) -> None:
        if not self.is_loaded:
            raise InvalidDimensionsError(ErrorMessages.NO_IMAGE_LOADED)

    def load_image(self, natural_size: Size, container_size: Size) -> CropBox:
        """
        Start a session on a new image: compute the mapping and a fresh crop box.

        Raises:
            InvalidDimensionsError: If either size has a non-positive component
        """
        mapping = compute_display_mapping(natural_size, container_size)
        self.mapping = mapping
        self.crop_box = initialize_crop_box(mapping, self.initial_crop_ratio)
        self._set_idle()

        logger.info(
            f"Loaded image {natural_size.width:g}x{natural_size.height:g} into "
            f"container {container_size.width:g}x{container_size.height:g} "
            f"(display {mapping.display_size.width:.1f}x{mapping.display_size.height:.1f})"
        )
        return self.crop_box

    def resize_container(self, container_size: Size) -> CropBox:
        """Recompute the mapping for a new container, keeping the user's crop box."""
        self._require_loaded()
        return self._remap(self.mapping.natural_size, container_size)

    def update_natural_size(self, natural_size: Size) -> CropBox:
        """Recompute the mapping for a new displayed image size (e.g. after rotation)."""
        self._require_loaded()
        return self._remap(natural_size, self.mapping.container_size)

    def _remap(self, natural_size: Size, container_size: Size) -> CropBox:
        mapping = compute_display_mapping(natural_size, container_size)
        self.mapping = mapping
        self.crop_box = fit_crop_box(self.crop_box, mapping)
        return self.crop_box

    def reset_crop_box(self) -> CropBox:
        """Replace the crop box with the initial centered square."""
        self._require_loaded()
        self.crop_box = initialize_crop_box(self.mapping, self.initial_crop_ratio)
        self._set_idle()
        return self.crop_box

    def pointer_down(self, edge: Optional[Union[ResizeEdge, str]] = None) -> InteractionState:
        """Pointer pressed on the box body (edge=None) or on a resize handle."""
        self._require_loaded()
        if edge is None:
            self.state = InteractionState.DRAGGING
            self.active_edge = None
        else:
            self.state = InteractionState.RESIZING
            self.active_edge = ResizeEdge(edge)
        logger.debug(f"Pointer down: state={self.state.value} edge={self.active_edge}")
        return self.state

    def pointer_move(self, dx: float, dy: float) -> Optional[CropBox]:
        """
        Apply an incremental pointer delta according to the current state.

        Returns:
            The (possibly unchanged) crop box
        """
        if self.state == InteractionState.IDLE:
            return self.crop_box

        if self.state == InteractionState.DRAGGING:
            self.crop_box = move_crop_box(self.crop_box, dx, dy, self.mapping)
        else:
            self.crop_box = resize_crop_box(
                self.crop_box, self.active_edge, dx, dy, self.mapping, self.min_crop_size
            )
        return self.crop_box

    def pointer_up(self) -> InteractionState:
        self._set_idle()
        return self.state

    def pointer_leave(self) -> InteractionState:
        """Pointer left the interaction surface; ends any drag like pointer_up."""
        return self.pointer_up()

    def _set_idle(self) -> None:
        self.state = InteractionState.IDLE
        self.active_edge = None

    @property
    def crop_rect(self) -> CropRect:
        """Current crop box projected into source-pixel space."""
        self._require_loaded()
        return project_to_source_space(self.crop_box, self.mapping)
