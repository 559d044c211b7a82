"""
Simple I/O helpers for moving between encoded bytes / files and RGBA rasters.

Every raster handed to the pipeline is (H, W, 4) uint8 in R, G, B, A order;
OpenCV's BGR(A) ordering stays inside this module.
"""

from __future__ import annotations
import cv2
import numpy as np

from docscan.core.contracts import InvalidInput


def to_rgba(img: np.ndarray) -> np.ndarray:
    """Normalize a decoded OpenCV image (gray, BGR or BGRA) to RGBA uint8."""
    if img is None or img.size == 0:
        raise InvalidInput("Empty image")
    if img.dtype == np.uint16:
        # 16-bit PNG/TIFF: keep the high byte
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        raise InvalidInput(f"Unsupported pixel type: {img.dtype}")
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise InvalidInput(f"Unsupported channel count: {channels}")


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode a PNG/JPEG (or anything OpenCV reads) byte buffer into RGBA.
    Raises InvalidInput if the buffer is empty or cannot be decoded.
    """
    if not data:
        raise InvalidInput("Empty image buffer")
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise InvalidInput("Could not decode image buffer")
    return to_rgba(img)


def encode_png(image: np.ndarray) -> bytes:
    """Encode an RGBA raster as PNG bytes."""
    check_raster(image)
    ok, buf = cv2.imencode(".png", cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise InvalidInput("PNG encoding failed")
    return buf.tobytes()


def load_image(path: str) -> np.ndarray:
    """
    Load an image from disk (RGBA).
    Raises FileNotFoundError if not found.
    """
    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Could not read image at: {path}")
    return to_rgba(img)


def save_image(path: str, image: np.ndarray) -> None:
    with open(path, "wb") as f:
        f.write(encode_png(image))


def check_raster(image: np.ndarray) -> None:
    """Raise InvalidInput unless image is a non-empty (H, W, 4) uint8 array."""
    if not isinstance(image, np.ndarray) or image.ndim != 3 or image.shape[2] != 4:
        shape = getattr(image, "shape", None)
        raise InvalidInput(f"Expected an (H, W, 4) RGBA raster, got shape {shape}")
    if image.shape[0] <= 0 or image.shape[1] <= 0:
        raise InvalidInput(f"Zero-area raster: {image.shape[1]}x{image.shape[0]}")
    if image.dtype != np.uint8:
        raise InvalidInput(f"Expected uint8 raster, got {image.dtype}")
