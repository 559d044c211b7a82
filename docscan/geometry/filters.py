# docscan/geometry/filters.py
"""
Pixel filters feeding corner extraction: luminance + Gaussian blur, then a
Sobel gradient-magnitude field.
"""
from __future__ import annotations
import cv2
import numpy as np

from docscan.core.contracts import InvalidInput

# Perceptual weights (R, G, B). Used everywhere a luminance value is needed.
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

_SOBEL_X = np.array([[-1, 0, 1],
                     [-2, 0, 2],
                     [-1, 0, 1]], dtype=np.float64)
_SOBEL_Y = _SOBEL_X.T.copy()


def _check_image(image: np.ndarray) -> np.ndarray:
    img = np.asarray(image)
    if img.ndim not in (2, 3) or img.shape[0] <= 0 or img.shape[1] <= 0:
        raise InvalidInput(f"Expected a non-empty 2D raster, got shape {img.shape}")
    if img.ndim == 3 and img.shape[2] < 3:
        raise InvalidInput(f"Expected RGB(A) channels, got shape {img.shape}")
    return img


def luminance(image: np.ndarray) -> np.ndarray:
    """(H, W, 3|4) RGB(A) -> (H, W) uint8 luminance. 2D input is already gray."""
    img = _check_image(image)
    if img.ndim == 2:
        return img.astype(np.uint8, copy=True)
    r, g, b = (img[:, :, i].astype(np.float64) for i in range(3))
    wr, wg, wb = LUMA_WEIGHTS
    lum = wr * r + wg * g + wb * b
    return np.clip(np.floor(lum + 0.5), 0, 255).astype(np.uint8)


def smooth(image: np.ndarray, radius: int = 5) -> np.ndarray:
    """
    Grayscale + Gaussian blur. Kernel is (2*radius+1) square with
    sigma = radius * 2/3, which keeps paper texture out of the gradient.
    """
    gray = luminance(image)
    if radius <= 0:
        return gray
    k = 2 * int(radius) + 1
    sigma = radius * (2.0 / 3.0)
    return cv2.GaussianBlur(gray, (k, k), sigmaX=sigma, sigmaY=sigma,
                            borderType=cv2.BORDER_REPLICATE)


def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
    """
    Sobel magnitude sqrt(gx^2 + gy^2), clamped to [0, 255] and truncated.
    The one-pixel frame has no full 3x3 neighbourhood and stays 0.
    """
    g = _check_image(gray)
    if g.ndim == 3:
        g = luminance(g)
    H, W = g.shape[:2]
    out = np.zeros((H, W), dtype=np.uint8)
    if H < 3 or W < 3:
        return out

    src = g.astype(np.float64)
    gx = cv2.filter2D(src, cv2.CV_64F, _SOBEL_X)
    gy = cv2.filter2D(src, cv2.CV_64F, _SOBEL_Y)
    mag = np.sqrt(gx * gx + gy * gy)
    out[1:-1, 1:-1] = np.clip(mag[1:-1, 1:-1], 0, 255).astype(np.uint8)
    return out
