"""
Tests for the composite (rotate -> flip -> crop) engine
"""

import cv2
import numpy as np
import pytest

from core.composite_engine import (
    CompositeEngine,
    clamp_crop_to_canvas,
    compose_matrix,
    working_canvas_size,
)
from core.exceptions import (
    DegenerateCropError,
    InvalidDimensionsError,
    InvalidSourceBufferError,
)
from schemas import CropRect, Size, TransformState


def rotated(degrees, flip_h=False, flip_v=False):
    return TransformState(rotation_degrees=degrees, flip_horizontal=flip_h, flip_vertical=flip_v)


class TestWorkingCanvas:
    """Test working canvas sizing"""

    @pytest.mark.parametrize(
        "rotation,expected",
        [
            (0, (1000, 500)),
            (90, (500, 1000)),
            (180, (1000, 500)),
            (270, (500, 1000)),
            (360, (1000, 500)),
            (45, (500, 1000)),
        ],
    )
    def test_swaps_unless_multiple_of_180(self, rotation, expected):
        """Test width/height swap rule"""
        assert working_canvas_size(Size(width=1000, height=500), rotation) == expected

    @pytest.mark.parametrize(
        "rotation,expected",
        [
            (0, (641, 481)),
            (90, (481, 641)),
        ],
    )
    def test_half_pixel_sizes_round_up(self, rotation, expected):
        """Test that x.5 natural sizes round up like crop projection does"""
        assert working_canvas_size(Size(width=640.5, height=480.5), rotation) == expected

    def test_clamp_crop_to_canvas(self):
        """Test clamping against the canvas"""
        clamped = clamp_crop_to_canvas(CropRect(x=600, y=400, width=100, height=100), 640, 480)

        assert clamped == CropRect(x=600, y=400, width=40, height=80)

    def test_clamp_crop_straddling_origin(self):
        """Test clamping a crop that starts above and left of the canvas"""
        clamped = clamp_crop_to_canvas(CropRect(x=-10, y=-20, width=50, height=50), 640, 480)

        assert clamped == CropRect(x=0, y=0, width=40, height=30)
        assert (clamped.right, clamped.bottom) == (40, 30)

    def test_clamp_crop_outside_canvas_is_empty(self):
        """Test that a crop entirely outside the canvas collapses"""
        clamped = clamp_crop_to_canvas(CropRect(x=700, y=10, width=100, height=100), 640, 480)

        assert clamped.is_empty


class TestRenderTransforms:
    """Test rotation and flips"""

    def test_identity_round_trip(self, test_image):
        """Test that the identity transform reproduces the source pixel for pixel"""
        result = CompositeEngine.render(test_image, Size(width=640, height=480), TransformState())

        assert np.array_equal(result.image, test_image)
        assert not np.shares_memory(result.image, test_image)
        assert (result.width, result.height) == (640, 480)
        assert result.crop is None
        assert not result.degenerate_crop

    def test_source_not_mutated(self, gradient_image):
        """Test that rendering never writes to the source"""
        before = gradient_image.copy()

        CompositeEngine.render(gradient_image, transform=rotated(90, flip_h=True))
        CompositeEngine.render(gradient_image, transform=rotated(30, flip_v=True))

        assert np.array_equal(gradient_image, before)

    def test_rotate_90_is_clockwise(self, gradient_image):
        """Test 90 degrees: bottom-left pixel moves to the top-left"""
        result = CompositeEngine.render(gradient_image, transform=rotated(90))

        assert result.image.shape == (6, 4, 3)
        assert np.array_equal(result.image[0, 0], gradient_image[3, 0])
        assert np.array_equal(result.image, np.rot90(gradient_image, k=-1))

    def test_rotate_270(self, gradient_image):
        """Test 270 degrees: top-right pixel moves to the top-left"""
        result = CompositeEngine.render(gradient_image, transform=rotated(270))

        assert result.image.shape == (6, 4, 3)
        assert np.array_equal(result.image[0, 0], gradient_image[0, 5])

    def test_quarter_turns_swap_once_each(self, test_image):
        """Test that independent 90 and 270 renders each swap the dimensions"""
        for degrees in (90, 270):
            result = CompositeEngine.render(test_image, transform=rotated(degrees))
            assert (result.width, result.height) == (480, 640)

    def test_rotate_180(self, gradient_image):
        """Test half turn"""
        result = CompositeEngine.render(gradient_image, transform=rotated(180))

        assert np.array_equal(result.image, gradient_image[::-1, ::-1])

    def test_rotate_360_matches_0(self, test_image):
        """Test that a full turn is pixel-identical to no rotation"""
        full_turn = CompositeEngine.render(test_image, transform=rotated(360))
        no_turn = CompositeEngine.render(test_image, transform=rotated(0))

        assert np.array_equal(full_turn.image, no_turn.image)

    def test_flips(self, gradient_image):
        """Test horizontal and vertical flips"""
        horizontal = CompositeEngine.render(gradient_image, transform=rotated(0, flip_h=True))
        vertical = CompositeEngine.render(gradient_image, transform=rotated(0, flip_v=True))
        both = CompositeEngine.render(gradient_image, transform=rotated(0, True, True))

        assert np.array_equal(horizontal.image, gradient_image[:, ::-1])
        assert np.array_equal(vertical.image, gradient_image[::-1, :])
        assert np.array_equal(both.image, gradient_image[::-1, ::-1])

    def test_rotate_then_flip_order(self, gradient_image):
        """Test that the flip acts on the source before the rotation"""
        result = CompositeEngine.render(gradient_image, transform=rotated(90, flip_h=True))

        expected = np.rot90(gradient_image[:, ::-1], k=-1)
        reordered = np.rot90(gradient_image, k=-1)[:, ::-1]

        assert np.array_equal(result.image, expected)
        assert not np.array_equal(result.image, reordered)

    def test_matrix_agrees_with_right_angle_path(self, gradient_image):
        """Test that the affine composition matches the exact quarter-turn path"""
        for degrees in (90, 180, 270):
            for flip_h, flip_v in [(False, False), (True, False), (False, True), (True, True)]:
                transform = rotated(degrees, flip_h, flip_v)
                canvas = working_canvas_size(Size(width=6, height=4), degrees)
                matrix = compose_matrix((6, 4), canvas, transform)

                warped = cv2.warpAffine(gradient_image, matrix, canvas, flags=cv2.INTER_NEAREST)
                result = CompositeEngine.render(gradient_image, transform=transform)

                assert np.array_equal(warped, result.image)

    def test_compose_matrix_maps_center_to_center(self):
        """Test that rotation happens about the canvas center"""
        matrix = compose_matrix((60, 40), (40, 60), rotated(33, flip_h=True))

        center = matrix @ np.array([29.5, 19.5, 1.0])

        assert center == pytest.approx([19.5, 29.5])

    def test_arbitrary_angle(self, test_image):
        """Test slider rotation resamples onto the swapped canvas"""
        result = CompositeEngine.render(test_image, transform=rotated(45))

        assert result.image.shape == (640, 480, 3)
        assert result.image.dtype == test_image.dtype
        # Canvas corners are not covered by the rotated image
        assert np.array_equal(result.image[0, 0], [0, 0, 0])

    def test_arbitrary_angle_keeps_single_channel_axis(self):
        """Test that a trailing single channel survives resampling"""
        image = np.full((20, 30, 1), 200, dtype=np.uint8)

        result = CompositeEngine.render(image, transform=rotated(10))

        assert result.image.shape == (30, 20, 1)

    def test_grayscale(self):
        """Test 2D buffers"""
        image = np.arange(12, dtype=np.uint8).reshape(3, 4)

        result = CompositeEngine.render(image, transform=rotated(90))

        assert result.image.shape == (4, 3)
        assert np.array_equal(result.image, np.rot90(image, k=-1))

    def test_alpha_channel(self):
        """Test 4-channel buffers keep their channels"""
        image = np.zeros((10, 20, 4), dtype=np.uint8)
        image[..., 3] = 255

        result = CompositeEngine.render(image, transform=rotated(270, flip_v=True))

        assert result.image.shape == (20, 10, 4)
        assert np.all(result.image[..., 3] == 255)


class TestRenderCrop:
    """Test crop after rotation/flip"""

    def test_crop(self, test_image):
        """Test a plain sub-rectangle copy"""
        crop = CropRect(x=10, y=20, width=100, height=50)

        result = CompositeEngine.render(test_image, crop=crop)

        assert (result.width, result.height) == (100, 50)
        assert np.array_equal(result.image, test_image[20:70, 10:110])
        assert result.crop == crop
        assert result.canvas_size == (640, 480)

    def test_crop_clamped_to_canvas(self, test_image):
        """Test that an overhanging crop is clamped"""
        result = CompositeEngine.render(test_image, crop=CropRect(x=600, y=400, width=100, height=100))

        assert (result.width, result.height) == (40, 80)
        assert result.crop == CropRect(x=600, y=400, width=40, height=80)

    def test_crop_indexes_rotated_canvas(self, test_image):
        """Test that the crop is clamped against post-rotation dimensions"""
        crop = CropRect(x=0, y=500, width=480, height=140)

        result = CompositeEngine.render(test_image, transform=rotated(90), crop=crop)

        expected = np.rot90(test_image, k=-1)[500:640, 0:480]
        assert (result.width, result.height) == (480, 140)
        assert np.array_equal(result.image, expected)

    def test_crop_invalid_after_rotation_falls_back(self, test_image):
        """Test that a crop outside the rotated canvas renders the full canvas"""
        crop = CropRect(x=500, y=0, width=100, height=100)  # valid before the 90 degree turn

        result = CompositeEngine.render(test_image, transform=rotated(90), crop=crop)

        assert result.degenerate_crop
        assert result.crop is None
        assert result.image.shape == (640, 480, 3)

    def test_degenerate_crop_strict(self, test_image):
        """Test that strict mode reports a degenerate crop"""
        crop = CropRect(x=500, y=0, width=100, height=100)

        with pytest.raises(DegenerateCropError) as exc_info:
            CompositeEngine.render(test_image, transform=rotated(90), crop=crop, safe_mode=False)

        assert exc_info.value.details["canvas"] == [480, 640]

    def test_zero_area_crop_means_no_crop(self, test_image):
        """Test that a crop without positive area is ignored"""
        result = CompositeEngine.render(test_image, crop=CropRect(x=10, y=10, width=0, height=50))

        assert result.image.shape == test_image.shape
        assert not result.degenerate_crop

    def test_output_is_contiguous_copy(self, test_image):
        """Test that the output is freshly allocated"""
        result = CompositeEngine.render(
            test_image, transform=rotated(270), crop=CropRect(x=0, y=0, width=10, height=10)
        )

        assert result.image.flags["C_CONTIGUOUS"]
        assert not np.shares_memory(result.image, test_image)


class TestRenderErrors:
    """Test source validation"""

    @pytest.mark.parametrize(
        "source",
        [
            np.zeros((0, 10, 3), dtype=np.uint8),
            np.zeros((10, 0), dtype=np.uint8),
            np.zeros((4, 4, 2), dtype=np.uint8),
            np.zeros((2, 2, 2, 2), dtype=np.uint8),
            [[0, 0], [0, 0]],
            None,
        ],
    )
    def test_invalid_source(self, source):
        """Test unusable buffers"""
        with pytest.raises(InvalidSourceBufferError):
            CompositeEngine.render(source)

    def test_natural_size_mismatch(self, test_image):
        """Test that a buffer not matching its declared size is rejected"""
        with pytest.raises(InvalidSourceBufferError):
            CompositeEngine.render(test_image, Size(width=100, height=100))

    def test_half_pixel_natural_size_rounds_up(self):
        """Test that a 2.5x2.5 natural size matches a 3x3 buffer"""
        source = np.zeros((3, 3, 3), dtype=np.uint8)

        result = CompositeEngine.render(source, Size(width=2.5, height=2.5))

        assert result.canvas_size == (3, 3)
        assert result.image.shape == (3, 3, 3)

    def test_non_positive_natural_size(self, test_image):
        """Test that non-positive natural dimensions are reported"""
        with pytest.raises(InvalidDimensionsError):
            CompositeEngine.render(test_image, Size(width=0, height=480))
