"""
Pytest configuration and fixtures for image editor tests
"""

import cv2
import numpy as np
import pytest

from config import Settings
from core.geometry_engine import GeometryEngine, compute_display_mapping
from core.image_manager import ImageManager
from schemas import Size
from services.editor_service import ImageEditorService


@pytest.fixture
def test_image():
    """Create a 640x480 BGR test image with distinct quadrants"""
    image = np.zeros((480, 640, 3), dtype=np.uint8)
    # Add some content
    cv2.rectangle(image, (0, 0), (319, 239), (255, 0, 0), -1)
    cv2.rectangle(image, (320, 0), (639, 239), (0, 255, 0), -1)
    cv2.rectangle(image, (0, 240), (319, 479), (0, 0, 255), -1)
    cv2.circle(image, (480, 360), 50, (128, 128, 128), -1)
    return image


@pytest.fixture
def gradient_image():
    """Create a small image whose every pixel is unique"""
    values = np.arange(4 * 6 * 3, dtype=np.uint8).reshape((4, 6, 3))
    return values


@pytest.fixture
def png_bytes(test_image):
    """Test image encoded as PNG"""
    ok, buffer = cv2.imencode(".png", test_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def jpeg_bytes(test_image):
    """Test image encoded as JPEG"""
    ok, buffer = cv2.imencode(".jpg", test_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def settings():
    """Default settings (independent of the environment)"""
    return Settings()


@pytest.fixture
def wide_mapping():
    """1000x500 image shown in a 400x400 container"""
    return compute_display_mapping(Size(width=1000, height=500), Size(width=400, height=400))


@pytest.fixture
def geometry_engine():
    """GeometryEngine with the 1000x500 image loaded in a 400x400 container"""
    engine = GeometryEngine()
    engine.load_image(Size(width=1000, height=500), Size(width=400, height=400))
    return engine


@pytest.fixture
def image_manager():
    """Create ImageManager instance for testing"""
    manager = ImageManager(max_images=10)
    yield manager
    # Cleanup
    manager.cleanup()


@pytest.fixture
def editor_service(image_manager, settings):
    """Create ImageEditorService instance for testing"""
    return ImageEditorService(image_manager=image_manager, settings=settings)


@pytest.fixture
def open_editor(editor_service, image_manager, png_bytes):
    """Editor with the PNG test image open in a 400x400 container"""
    image_id = image_manager.store(png_bytes, filename="test.png", mime_type="image/png")
    editor_service.open(image_id, Size(width=400, height=400))
    return editor_service
