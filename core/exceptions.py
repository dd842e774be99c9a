"""
Exception hierarchy for the image editor.

Geometry edits never raise: interactive input is clamped. These exceptions
cover load-time shape violations and buffer/codec failures.
"""

from typing import Any, Dict, Optional

from core.constants import ErrorMessages


class ImageEditorException(Exception):
    """Base exception for all image editor errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for callers that surface errors to the user."""
        return {"error": type(self).__name__, "message": self.message, "details": self.details}


class InvalidDimensionsError(ImageEditorException):
    """Non-positive width/height somewhere in the pipeline."""


class DegenerateCropError(ImageEditorException):
    """Crop rectangle has zero area after clamping to the working canvas."""


class InvalidSourceBufferError(ImageEditorException):
    """Source pixel buffer is empty, malformed or undecodable."""


class EncodingFailureError(ImageEditorException):
    """Serializing the rendered buffer to an output format failed."""


class ImageNotFoundException(ImageEditorException):
    """Requested image ID is not in the store."""

    def __init__(self, image_id: str):
        super().__init__(
            ErrorMessages.IMAGE_NOT_FOUND.format(image_id=image_id), {"image_id": image_id}
        )
        self.image_id = image_id


class UnsupportedImageTypeError(ImageEditorException):
    """Uploaded file is not an image."""
