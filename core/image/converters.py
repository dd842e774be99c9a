"""
Image format conversion utilities.

Handles conversions at the persistence/export boundary:
- NumPy arrays (OpenCV BGR / BGRA channel order)
- PIL Images (RGB / RGBA)
- Encoded bytes (JPEG, PNG, WEBP, GIF) and data URLs
"""

import base64
import io
import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from core.constants import ErrorMessages, ExportConstants
from core.exceptions import EncodingFailureError, InvalidSourceBufferError

logger = logging.getLogger(__name__)


class ImageConverters:
    """Utilities for converting between image formats."""

    @staticmethod
    def numpy_to_pil(image: np.ndarray) -> Image.Image:
        """
        Convert NumPy array (OpenCV format) to PIL Image.

        Args:
            image: NumPy array in BGR/BGRA format (OpenCV) or grayscale

        Returns:
            PIL Image in RGB/RGBA/L format
        """
        if image.ndim == 3 and image.shape[2] == 1:
            image = image[:, :, 0]

        if image.ndim == 3 and image.shape[2] == 3:
            image_rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        elif image.ndim == 3 and image.shape[2] == 4:
            image_rgb = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
        else:
            image_rgb = image

        return Image.fromarray(np.ascontiguousarray(image_rgb))

    @staticmethod
    def pil_to_numpy(image: Image.Image, bgr: bool = True) -> np.ndarray:
        """
        Convert PIL Image to NumPy array.

        Args:
            image: PIL Image
            bgr: If True, convert to BGR/BGRA format (OpenCV), else keep RGB

        Returns:
            NumPy array
        """
        if image.mode in ("P", "PA", "LA"):
            has_alpha = image.mode != "P" or "transparency" in image.info
            image = image.convert("RGBA" if has_alpha else "RGB")
        elif image.mode not in ("L", "RGB", "RGBA"):
            image = image.convert("RGB")

        array = np.array(image)

        if bgr and array.ndim == 3 and array.shape[2] == 3:
            array = cv2.cvtColor(array, cv2.COLOR_RGB2BGR)
        elif bgr and array.ndim == 3 and array.shape[2] == 4:
            array = cv2.cvtColor(array, cv2.COLOR_RGBA2BGRA)

        return array

    @staticmethod
    def mime_to_format(mime_type: Optional[str]) -> str:
        """
        Map a mime type to a Pillow format name.

        Raises:
            EncodingFailureError: If the mime type has no supported encoder
        """
        mime_type = (mime_type or ExportConstants.DEFAULT_MIME_TYPE).lower()
        try:
            return ExportConstants.MIME_FORMATS[mime_type]
        except KeyError:
            raise EncodingFailureError(
                ErrorMessages.UNSUPPORTED_OUTPUT_FORMAT.format(mime_type=mime_type),
                {"mime_type": mime_type},
            ) from None

    @staticmethod
    def decode_image(data: bytes) -> np.ndarray:
        """
        Decode image bytes to a NumPy array.

        Args:
            data: Encoded image bytes

        Returns:
            NumPy array in BGR/BGRA format (OpenCV), grayscale stays 2D

        Raises:
            InvalidSourceBufferError: If the bytes cannot be decoded
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return ImageConverters.pil_to_numpy(image, bgr=True)
        except Exception as e:
            logger.error(f"Failed to decode image: {e}")
            raise InvalidSourceBufferError(
                ErrorMessages.INVALID_IMAGE_DATA.format(error=e), {"size_bytes": len(data or b"")}
            ) from e

    @staticmethod
    def encode_image(
        image: np.ndarray,
        mime_type: str = ExportConstants.DEFAULT_MIME_TYPE,
        quality: float = ExportConstants.DEFAULT_QUALITY,
    ) -> bytes:
        """
        Encode a rendered buffer to bytes.

        Args:
            image: Buffer in OpenCV channel order
            mime_type: Output mime type (image/jpeg, image/png, ...)
            quality: Quality in (0, 1], e.g. 0.95; ignored by lossless formats

        Returns:
            Encoded bytes

        Raises:
            EncodingFailureError: If serialization fails (not retried)
        """
        image_format = ImageConverters.mime_to_format(mime_type)

        try:
            pil_image = ImageConverters.numpy_to_pil(image)

            if image_format == "JPEG" and pil_image.mode not in ("RGB", "L"):
                pil_image = pil_image.convert("RGB")

            buffer = io.BytesIO()
            save_kwargs = {"format": image_format}

            if image_format in ExportConstants.LOSSY_FORMATS:
                bounded = max(ExportConstants.MIN_QUALITY, min(quality, ExportConstants.MAX_QUALITY))
                save_kwargs["quality"] = int(round(bounded * 100))
                if image_format == "JPEG":
                    save_kwargs["optimize"] = True

            pil_image.save(buffer, **save_kwargs)
            return buffer.getvalue()

        except Exception as e:
            logger.error(f"Failed to encode image as {mime_type}: {e}")
            raise EncodingFailureError(
                ErrorMessages.ENCODING_FAILED.format(mime_type=mime_type, error=e),
                {"mime_type": mime_type},
            ) from e

    @staticmethod
    def to_base64(
        image: np.ndarray,
        mime_type: str = ExportConstants.DEFAULT_MIME_TYPE,
        quality: float = ExportConstants.DEFAULT_QUALITY,
    ) -> str:
        """Encode a buffer and return it as a base64 string."""
        return base64.b64encode(ImageConverters.encode_image(image, mime_type, quality)).decode(
            "utf-8"
        )

    @staticmethod
    def to_data_url(
        image: np.ndarray,
        mime_type: str = ExportConstants.DEFAULT_MIME_TYPE,
        quality: float = ExportConstants.DEFAULT_QUALITY,
    ) -> str:
        """Encode a buffer as a data URL for previews."""
        encoded = ImageConverters.to_base64(image, mime_type, quality)
        return f"data:{mime_type};base64,{encoded}"
