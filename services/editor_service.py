"""
Image Editor Service - Business logic for one image editing session.

This service orchestrates the editing flow:
- Loading an asset and fitting it into the crop container
- Quarter-turn / slider rotation and flips
- Crop mode and pointer-driven crop box edits
- Preview rendering, save (encode + store) and reset to original
"""

import logging
from typing import Any, Dict, Optional

import numpy as np

from config import Settings, get_settings
from core.composite_engine import CompositeEngine, RenderResult, working_canvas_size
from core.constants import ErrorMessages, ExportConstants
from core.enums import EditMode, InteractionState, ResizeEdge
from core.exceptions import ImageEditorException
from core.geometry_engine import GeometryEngine
from core.image.converters import ImageConverters
from core.image_manager import ImageAsset, ImageManager
from schemas import CropBox, CropRect, Size, TransformState

logger = logging.getLogger(__name__)


class ImageEditorService:
    """
    Service for editing a single image at a time.

    The geometry engine is fed the size of the rotated working canvas, so the
    crop rectangle it produces indexes the same pixels the composite engine
    crops from. Pointer events do not render; callers re-render at their own
    pace (e.g. once per animation frame).
    """

    def __init__(self, image_manager: ImageManager, settings: Optional[Settings] = None):
        """
        Initialize editor service.

        Args:
            image_manager: Image manager instance
            settings: Application settings, defaults to the cached settings
        """
        self.image_manager = image_manager
        self.settings = settings or get_settings()
        self.geometry = self._new_geometry()

        self.image_id: Optional[str] = None
        self.source: Optional[np.ndarray] = None
        self.container_size: Optional[Size] = None
        self.transform = TransformState()
        self.edit_mode: Optional[EditMode] = None
        self.preview: Optional[RenderResult] = None

    # Session lifecycle

    @property
    def is_open(self) -> bool:
        return self.image_id is not None and self.source is not None

    def _require_open(self) -> None:
        if not self.is_open:
            raise ImageEditorException(ErrorMessages.NO_IMAGE_OPEN)

    def open(self, image_id: str, container_size: Size) -> RenderResult:
        """
        Open an image for editing and render the first preview.

        Raises:
            ImageNotFoundException: If the image does not exist
            InvalidDimensionsError: If the container has a non-positive size
        """
        source = self.image_manager.get(image_id)
        self._load_source(source, container_size)
        self.image_id = image_id
        self.preview = None

        logger.info(f"Opened image {image_id} for editing")
        return self.render_preview()

    def close(self) -> None:
        self.image_id = None
        self.source = None
        self.preview = None
        self.transform = TransformState()
        self.edit_mode = None
        self.geometry = self._new_geometry()

    def _new_geometry(self) -> GeometryEngine:
        return GeometryEngine(
            min_crop_size=self.settings.editor.min_crop_size,
            initial_crop_ratio=self.settings.editor.initial_crop_ratio,
        )

    def _load_source(self, source: np.ndarray, container_size: Optional[Size] = None) -> None:
        """
        New source pixels: transform resets and the crop box starts fresh.

        The geometry is computed before anything is replaced, so a failure
        leaves the session untouched.
        """
        container_size = container_size or self.container_size
        height, width = source.shape[:2]
        geometry = self._new_geometry()
        geometry.load_image(Size(width=width, height=height), container_size)

        self.geometry = geometry
        self.container_size = container_size
        self.source = source
        self.transform = TransformState()
        self.edit_mode = None

    @property
    def natural_size(self) -> Size:
        self._require_open()
        height, width = self.source.shape[:2]
        return Size(width=width, height=height)

    @property
    def canvas_size(self) -> Size:
        """Size of the rotated working canvas the crop box is edited against."""
        width, height = working_canvas_size(self.natural_size, self.transform.rotation_degrees)
        return Size(width=width, height=height)

    def resize_container(self, container_size: Size) -> CropBox:
        """The crop container changed size; the user's crop box is kept."""
        self._require_open()
        crop_box = self.geometry.resize_container(container_size)
        self.container_size = container_size
        return crop_box

    # Transforms

    def _apply_transform(self, transform: TransformState) -> RenderResult:
        self._require_open()
        previous = (self.transform, self.geometry.mapping, self.geometry.crop_box)
        previous_canvas = self.canvas_size
        self.transform = transform

        if self.canvas_size != previous_canvas:
            self.geometry.update_natural_size(self.canvas_size)

        logger.debug(
            f"Transform: rotation={transform.rotation_degrees:g} "
            f"flip_h={transform.flip_horizontal} flip_v={transform.flip_vertical}"
        )
        try:
            return self.render_preview()
        except ImageEditorException:
            # Restore the pre-transform state
            self.transform, self.geometry.mapping, self.geometry.crop_box = previous
            raise

    def rotate_clockwise(self) -> RenderResult:
        return self._apply_transform(self.transform.rotate_clockwise())

    def rotate_counter_clockwise(self) -> RenderResult:
        return self._apply_transform(self.transform.rotate_counter_clockwise())

    def set_rotation(self, degrees: float) -> RenderResult:
        """Continuous rotation from the slider (0-360)."""
        return self._apply_transform(self.transform.with_rotation(degrees))

    def flip_horizontal(self) -> RenderResult:
        return self._apply_transform(self.transform.toggle_flip_horizontal())

    def flip_vertical(self) -> RenderResult:
        return self._apply_transform(self.transform.toggle_flip_vertical())

    # Crop

    def toggle_crop_mode(self) -> RenderResult:
        """Enter or leave crop mode; leaving clears the crop from the output."""
        self._require_open()
        self.edit_mode = None if self.edit_mode == EditMode.CROP else EditMode.CROP
        logger.debug(f"Crop mode {'on' if self.edit_mode else 'off'}")
        return self.render_preview()

    @property
    def crop_box(self) -> Optional[CropBox]:
        return self.geometry.crop_box

    @property
    def crop_rect(self) -> Optional[CropRect]:
        """Source-space crop applied to the output, None outside crop mode."""
        if self.edit_mode != EditMode.CROP or not self.geometry.is_loaded:
            return None
        return self.geometry.crop_rect

    def pointer_down(self, edge: Optional[ResizeEdge] = None) -> InteractionState:
        self._require_open()
        return self.geometry.pointer_down(edge)

    def pointer_move(self, dx: float, dy: float) -> Optional[CropBox]:
        return self.geometry.pointer_move(dx, dy)

    def pointer_up(self) -> InteractionState:
        return self.geometry.pointer_up()

    def pointer_leave(self) -> InteractionState:
        return self.geometry.pointer_leave()

    # Rendering

    def render_preview(self) -> RenderResult:
        """
        Render the current state.

        On failure the previous preview is kept and the error is re-raised.
        """
        self._require_open()
        try:
            result = CompositeEngine.render(
                self.source, self.natural_size, self.transform, self.crop_rect
            )
        except ImageEditorException as e:
            logger.error(f"Preview render failed, keeping previous preview: {e.message}")
            raise

        self.preview = result
        return result

    def render_canvas(self) -> RenderResult:
        """Render rotation and flips only (background for the crop editor)."""
        self._require_open()
        return CompositeEngine.render(self.source, self.natural_size, self.transform)

    def _output_mime_type(self, asset: ImageAsset) -> str:
        if asset.mime_type in ExportConstants.MIME_FORMATS:
            return asset.mime_type
        return self.settings.export.default_mime_type

    def preview_data_url(self) -> str:
        """Current preview encoded as a data URL."""
        self._require_open()
        if self.preview is None:
            self.render_preview()
        asset = self.image_manager.get_asset(self.image_id)
        return ImageConverters.to_data_url(
            self.preview.image, self._output_mime_type(asset), self.settings.export.quality
        )

    # Commit / reset

    def save(self, quality: Optional[float] = None) -> ImageAsset:
        """
        Encode the rendered result and store it as the image's new content.

        The stored dimensions are the literal output dimensions. The transform
        and crop mode are reset and editing continues on the saved pixels.

        Raises:
            EncodingFailureError: If encoding fails (state is left unchanged)
        """
        self._require_open()
        asset = self.image_manager.get_asset(self.image_id)
        mime_type = self._output_mime_type(asset)
        quality = self.settings.export.quality if quality is None else quality

        result = CompositeEngine.render(self.source, self.natural_size, self.transform, self.crop_rect)
        data = ImageConverters.encode_image(result.image, mime_type, quality)

        updated = self.image_manager.update(
            self.image_id, data, result.width, result.height, mime_type=mime_type
        )
        self._load_source(self.image_manager.get(self.image_id))
        self.render_preview()

        logger.info(f"Saved image {self.image_id} as {mime_type} ({result.width}x{result.height})")
        return updated

    def reset(self) -> RenderResult:
        """Restore the original upload and clear all transforms."""
        self._require_open()
        self.image_manager.restore_original(self.image_id)
        self._load_source(self.image_manager.get_original(self.image_id))

        logger.info(f"Image {self.image_id} reset to original")
        return self.render_preview()

    def replace(
        self, data: bytes, filename: Optional[str] = None, mime_type: Optional[str] = None
    ) -> RenderResult:
        """Replace the open image with a new upload (which becomes the original)."""
        self._require_open()
        self.image_manager.replace(self.image_id, data, filename, mime_type)
        self._load_source(self.image_manager.get(self.image_id))
        return self.render_preview()

    def delete(self) -> bool:
        """Delete the open image and close the session."""
        self._require_open()
        deleted = self.image_manager.delete(self.image_id)
        self.close()
        return deleted

    def get_state(self) -> Dict[str, Any]:
        """Snapshot of the session for the presentation layer."""
        mapping = self.geometry.mapping
        crop_rect = self.crop_rect
        return {
            "image_id": self.image_id,
            "transform": self.transform.model_dump(),
            "edit_mode": self.edit_mode.value if self.edit_mode else None,
            "interaction": self.geometry.state.value,
            "display": mapping.model_dump() if mapping else None,
            "crop_box": self.crop_box.model_dump() if self.crop_box else None,
            "crop_rect": crop_rect.to_dict() if crop_rect else None,
            "output_size": (
                {"width": self.preview.width, "height": self.preview.height} if self.preview else None
            ),
        }
