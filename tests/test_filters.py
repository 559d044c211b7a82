"""
Luminance / blur / Sobel stages on tiny hand-built rasters.
"""
from __future__ import annotations
import numpy as np
import pytest

from docscan.core.contracts import InvalidInput
from docscan.geometry.filters import gradient_magnitude, luminance, smooth


def _rgba(h: int, w: int, color) -> np.ndarray:
    img = np.zeros((h, w, 4), np.uint8)
    img[:] = color
    return img


def test_luminance_uses_perceptual_weights():
    px = np.array([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255], [255, 255, 255, 255]]], np.uint8)
    assert luminance(px).tolist() == [[76, 150, 29, 255]]


def test_luminance_passes_gray_through():
    g = np.arange(12, dtype=np.uint8).reshape(3, 4)
    out = luminance(g)
    assert np.array_equal(out, g)
    assert out is not g


def test_smooth_keeps_shape_and_flat_fields():
    img = _rgba(20, 30, (90, 90, 90, 255))
    out = smooth(img)
    assert out.shape == (20, 30)
    assert out.dtype == np.uint8
    assert (out == 90).all()


def test_smooth_spreads_a_single_bright_pixel():
    img = _rgba(21, 21, (0, 0, 0, 255))
    img[10, 10] = (255, 255, 255, 255)
    out = smooth(img, radius=5)
    assert out[10, 10] < 255
    assert out[10, 12] > 0
    assert out[10, 10] >= out[10, 12]


@pytest.mark.parametrize("shape", [(0, 0, 4), (0, 5, 4), (5, 0, 4)])
def test_smooth_rejects_zero_area(shape):
    with pytest.raises(InvalidInput):
        smooth(np.zeros(shape, np.uint8))


def test_gradient_border_stays_zero():
    rng = np.random.default_rng(1)
    gray = rng.integers(0, 256, size=(12, 15), dtype=np.uint8)
    mag = gradient_magnitude(gray)
    assert mag.shape == gray.shape
    assert not mag[0, :].any() and not mag[-1, :].any()
    assert not mag[:, 0].any() and not mag[:, -1].any()


def test_gradient_of_vertical_step():
    gray = np.zeros((8, 10), np.uint8)
    gray[:, 5:] = 10
    mag = gradient_magnitude(gray)
    # gx = 4 * (I(x+1) - I(x-1)) along a straight vertical edge
    assert mag[3, 4] == 40
    assert mag[3, 5] == 40
    assert mag[3, 2] == 0
    assert mag[3, 7] == 0


def test_gradient_clamps_to_255():
    gray = np.zeros((8, 10), np.uint8)
    gray[:, 5:] = 200
    mag = gradient_magnitude(gray)
    assert mag[4, 4] == 255
    assert mag.max() == 255


def test_gradient_on_tiny_images_is_all_zero():
    assert not gradient_magnitude(np.full((2, 2), 200, np.uint8)).any()
