"""
Constants and configuration values for the image editor engine.
Centralizes all magic numbers and configuration constants.
"""


# Editor Constants
class EditorConstants:
    """Constants related to interactive crop and transform editing."""

    # Crop box limits (display-space units)
    MIN_CROP_SIZE = 50
    INITIAL_CROP_RATIO = 0.8  # Initial box side = 80% of the shorter display side

    # Rotation
    ROTATION_STEP = 90
    MIN_ROTATION = 0
    MAX_ROTATION = 360
    FULL_TURN = 360


# Export Constants
class ExportConstants:
    """Constants related to encoding the rendered image."""

    DEFAULT_MIME_TYPE = "image/jpeg"
    DEFAULT_QUALITY = 0.95
    MIN_QUALITY = 0.01
    MAX_QUALITY = 1.0

    # Mime type -> Pillow format name
    MIME_FORMATS = {
        "image/jpeg": "JPEG",
        "image/jpg": "JPEG",
        "image/png": "PNG",
        "image/webp": "WEBP",
        "image/gif": "GIF",
    }

    # Formats that accept a quality parameter
    LOSSY_FORMATS = ("JPEG", "WEBP")


# Image Management Constants
class ImageConstants:
    """Constants related to in-memory image storage."""

    DEFAULT_MAX_IMAGES = 100
    MIN_IMAGES = 1
    MAX_IMAGES = 1000

    ACCEPTED_MIME_PREFIX = "image/"
    DEFAULT_FILENAME = "image-{timestamp}.jpg"


# System Constants
class SystemConstants:
    """Constants for system operations."""

    LOG_LEVEL_DEFAULT = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ENV_PREFIX = "IMAGE_EDITOR_"


# Error Messages
class ErrorMessages:
    """Standard error messages."""

    # Image errors
    IMAGE_NOT_FOUND = "Image with ID {image_id} not found"
    UNSUPPORTED_IMAGE_TYPE = "Please upload image files only, got: {mime_type}"
    INVALID_IMAGE_DATA = "Unable to decode image data: {error}"

    # Geometry errors
    INVALID_DIMENSIONS = "Invalid {name} dimensions: {width}x{height}"
    NO_IMAGE_LOADED = "No image loaded in the editing session"
    NO_IMAGE_OPEN = "No image is open in the editor"
    DEGENERATE_CROP = "Crop {crop} collapses to an empty region on canvas {width}x{height}"

    # Buffer errors
    INVALID_SOURCE_BUFFER = "Invalid source buffer: {reason}"
    ENCODING_FAILED = "Failed to encode image as {mime_type}: {error}"
    UNSUPPORTED_OUTPUT_FORMAT = "Unsupported output format: {mime_type}"
