# docscan/pipeline.py
"""
Byte-level entry points: encoded photo in, corners / encoded PNG out.

    corners = detect_edges(jpeg_bytes)                 # never None for a decodable image
    png = warp_perspective(jpeg_bytes, corners)        # flattened page
    result = scan(jpeg_bytes, corners=user_corners)    # both in one call

Every call decodes its own raster; nothing is shared between calls.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union
import numpy as np

from docscan.core.contracts import Corners
from docscan.geometry.detect import default_corners, detect, merge_cfg
from docscan.geometry.rectify import enhance_contrast as _enhance, warp_document
from docscan.io.ingest import decode_image, encode_png

CornersLike = Union[Corners, np.ndarray, Sequence[Sequence[float]]]

SOURCE_DETECTED = "detected"
SOURCE_USER = "user"
SOURCE_FALLBACK = "fallback"


@dataclass
class ScanResult:
    corners: Corners
    source: str          # "detected" | "user" | "fallback"
    image: np.ndarray    # rectified RGBA

    @property
    def detected(self) -> bool:
        return self.source == SOURCE_DETECTED

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.shape[1], self.image.shape[0]

    def to_png(self) -> bytes:
        return encode_png(self.image)


def _as_corners(corners: CornersLike) -> Corners:
    if isinstance(corners, Corners):
        return corners
    return Corners.from_points(corners)


def _locate(image: np.ndarray, cfg: Dict) -> Tuple[Corners, str]:
    found = detect(image, cfg)
    if found is not None:
        return found, SOURCE_DETECTED
    H, W = image.shape[:2]
    if cfg.get("debug"):
        print(f"[scan] no document found, using full frame {W}x{H}")
    return default_corners(W, H), SOURCE_FALLBACK


def detect_edges(image_bytes: bytes, cfg: Optional[Dict] = None) -> Corners:
    """Document corners [TL, TR, BR, BL]; the full image bounds if none are found."""
    cfg = merge_cfg(cfg)
    corners, _ = _locate(decode_image(image_bytes), cfg)
    return corners


def warp_perspective(
    image_bytes: bytes,
    corners: CornersLike,
    *,
    target_width: Optional[int] = None,
    target_height: Optional[int] = None,
    cfg: Optional[Dict] = None,
) -> bytes:
    """Flatten the quad `corners` of the encoded image; returns PNG bytes."""
    image = decode_image(image_bytes)
    out = warp_document(image, _as_corners(corners), width=target_width, height=target_height, cfg=cfg)
    return encode_png(out)


def enhance_contrast(image_bytes: bytes, cfg: Optional[Dict] = None) -> bytes:
    """Contrast/brightness boost for a scanned page; returns PNG bytes."""
    cfg = merge_cfg(cfg)
    image = decode_image(image_bytes)
    return encode_png(_enhance(image, **cfg["enhance"]))


def scan(
    image_bytes: bytes,
    *,
    corners: Optional[CornersLike] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
    enhance: bool = False,
    cfg: Optional[Dict] = None,
) -> ScanResult:
    """
    Decode, find the page (unless `corners` are given), flatten, optionally
    enhance. Raises InvalidInput for undecodable bytes and
    DegenerateGeometry for collinear corners; a missing outline is not an
    error and yields source == "fallback".
    """
    cfg = merge_cfg(cfg)
    image = decode_image(image_bytes)

    if corners is not None:
        quad, source = _as_corners(corners), SOURCE_USER
    else:
        quad, source = _locate(image, cfg)

    out = warp_document(image, quad, width=width, height=height, cfg=cfg)
    if enhance:
        out = _enhance(out, **cfg["enhance"])
    if cfg.get("debug"):
        print(f"[scan] source={source}, corners={quad.pts.tolist()}, out={out.shape[1]}x{out.shape[0]}")
    return ScanResult(corners=quad, source=source, image=out)
