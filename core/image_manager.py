"""
Image Manager - In-memory store of uploaded image assets
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime
from threading import RLock
from typing import Any, Dict, List, Optional

import numpy as np

from core.constants import ErrorMessages, ExportConstants, ImageConstants
from core.exceptions import ImageNotFoundException, UnsupportedImageTypeError
from core.image.converters import ImageConverters

logger = logging.getLogger(__name__)


@dataclass
class ImageAsset:
    """Uploaded image and its untouched original (kept for reset)"""

    id: str
    filename: str
    mime_type: str
    data: bytes
    original_data: bytes
    width: int
    height: int
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Metadata without the encoded bytes."""
        return {
            "id": self.id,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "width": self.width,
            "height": self.height,
            "size_bytes": len(self.data),
            "created_at": self.created_at.isoformat(),
        }


class ImageManager:
    """Bounded, thread-safe store of image assets (oldest evicted first)"""

    def __init__(self, max_images: int = ImageConstants.DEFAULT_MAX_IMAGES):
        """
        Initialize Image Manager

        Args:
            max_images: Maximum number of images to keep
        """
        self.max_images = max(ImageConstants.MIN_IMAGES, min(max_images, ImageConstants.MAX_IMAGES))
        self.images: "OrderedDict[str, ImageAsset]" = OrderedDict()

        # Thread safety (RLock allows reentrant locking)
        self.lock = RLock()

        logger.info(f"Image Manager initialized with max images: {self.max_images}")

    def store(self, data: bytes, filename: Optional[str] = None, mime_type: Optional[str] = None) -> str:
        """
        Decode and store an uploaded image.

        Args:
            data: Encoded image bytes
            filename: Original file name
            mime_type: Uploaded file type, must be image/*

        Returns:
            Image ID

        Raises:
            UnsupportedImageTypeError: If mime_type is not an image type
            InvalidSourceBufferError: If the bytes cannot be decoded
        """
        mime_type = self._check_mime_type(mime_type)
        image = ImageConverters.decode_image(data)
        height, width = image.shape[:2]

        asset = ImageAsset(
            id=str(uuid.uuid4()),
            filename=filename or self._default_filename(),
            mime_type=mime_type,
            data=data,
            original_data=data,
            width=width,
            height=height,
        )

        with self.lock:
            self.images[asset.id] = asset
            while len(self.images) > self.max_images:
                evicted_id, _ = self.images.popitem(last=False)
                logger.info(f"Evicted oldest image {evicted_id}")

        logger.info(f"Stored image {asset.id} ({asset.filename}, {width}x{height})")
        return asset.id

    def get_asset(self, image_id: str) -> ImageAsset:
        """
        Get asset by ID

        Raises:
            ImageNotFoundException: If the ID is unknown
        """
        with self.lock:
            asset = self.images.get(image_id)
        if asset is None:
            raise ImageNotFoundException(image_id)
        return asset

    def get(self, image_id: str) -> np.ndarray:
        """Get the decoded current pixels of an image."""
        return ImageConverters.decode_image(self.get_asset(image_id).data)

    def get_original(self, image_id: str) -> np.ndarray:
        """Get the decoded original pixels of an image."""
        return ImageConverters.decode_image(self.get_asset(image_id).original_data)

    def has_image(self, image_id: str) -> bool:
        with self.lock:
            return image_id in self.images

    def update(
        self, image_id: str, data: bytes, width: int, height: int, mime_type: Optional[str] = None
    ) -> ImageAsset:
        """
        Replace the current pixels of an image, keeping its original.

        Args:
            image_id: Image identifier
            data: New encoded bytes
            width: Literal pixel width of the new data
            height: Literal pixel height of the new data
            mime_type: New mime type, defaults to the current one

        Returns:
            Updated asset
        """
        with self.lock:
            asset = self.get_asset(image_id)
            updated = replace(
                asset,
                data=data,
                width=width,
                height=height,
                mime_type=mime_type or asset.mime_type,
            )
            self.images[image_id] = updated

        logger.info(f"Updated image {image_id} ({width}x{height})")
        return updated

    def replace(
        self, image_id: str, data: bytes, filename: Optional[str] = None, mime_type: Optional[str] = None
    ) -> ImageAsset:
        """Replace an image with a new upload; the upload becomes the new original."""
        mime_type = self._check_mime_type(mime_type)
        image = ImageConverters.decode_image(data)
        height, width = image.shape[:2]

        with self.lock:
            asset = self.get_asset(image_id)
            replaced = replace(
                asset,
                filename=filename or asset.filename,
                mime_type=mime_type,
                data=data,
                original_data=data,
                width=width,
                height=height,
            )
            self.images[image_id] = replaced

        logger.info(f"Replaced image {image_id} with {replaced.filename} ({width}x{height})")
        return replaced

    def restore_original(self, image_id: str) -> ImageAsset:
        """Reset an image to its original upload."""
        with self.lock:
            asset = self.get_asset(image_id)
            if asset.data is asset.original_data:
                return asset
            image = ImageConverters.decode_image(asset.original_data)
            height, width = image.shape[:2]
            restored = replace(asset, data=asset.original_data, width=width, height=height)
            self.images[image_id] = restored

        logger.info(f"Image {image_id} reset to original")
        return restored

    def delete(self, image_id: str) -> bool:
        """
        Delete image

        Returns:
            True if the image existed
        """
        with self.lock:
            removed = self.images.pop(image_id, None)
        if removed is not None:
            logger.info(f"Deleted image {image_id}")
        return removed is not None

    def list_images(self) -> List[Dict[str, Any]]:
        """Metadata of all images, newest first."""
        with self.lock:
            assets = list(self.images.values())
        return [asset.to_dict() for asset in reversed(assets)]

    def cleanup(self):
        """Drop all stored images."""
        with self.lock:
            count = len(self.images)
            self.images.clear()
        logger.info(f"Image Manager cleaned up ({count} images released)")

    @staticmethod
    def _check_mime_type(mime_type: Optional[str]) -> str:
        mime_type = (mime_type or ExportConstants.DEFAULT_MIME_TYPE).lower()
        if not mime_type.startswith(ImageConstants.ACCEPTED_MIME_PREFIX):
            raise UnsupportedImageTypeError(
                ErrorMessages.UNSUPPORTED_IMAGE_TYPE.format(mime_type=mime_type),
                {"mime_type": mime_type},
            )
        return mime_type

    @staticmethod
    def _default_filename() -> str:
        timestamp = int(datetime.now().timestamp() * 1000)
        return ImageConstants.DEFAULT_FILENAME.format(timestamp=timestamp)
