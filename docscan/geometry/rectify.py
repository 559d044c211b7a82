# docscan/geometry/rectify.py
from __future__ import annotations
from typing import Dict, Optional, Tuple, Union
import math
import numpy as np

from docscan.core.contracts import Corners, Homography, InvalidInput
from docscan.geometry.homography import rectangle, solve
from docscan.io.ingest import check_raster


def _dist(a, b) -> float:
    return math.hypot(float(a[0]) - float(b[0]), float(a[1]) - float(b[1]))


def compute_target_size(
    corners: Union[Corners, np.ndarray],
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Pick (W, H) for the flattened page: the longer of the top/bottom edges
    and the longer of the left/right edges, truncated to whole pixels.
    Explicit width/height win.
    """
    q = corners.pts if isinstance(corners, Corners) else np.asarray(corners, np.float64).reshape(4, 2)
    tl, tr, br, bl = q
    if width is None:
        width = int(max(_dist(tl, tr), _dist(bl, br)))
    if height is None:
        height = int(max(_dist(tl, bl), _dist(tr, br)))
    return int(width), int(height)


def rectify(
    image: np.ndarray,
    homography: Homography,
    out_width: int,
    out_height: int,
    *,
    debug: bool = False,
) -> np.ndarray:
    """
    Pull every destination pixel from the source through the homography.

    Samples landing outside [0, W) x [0, H) stay fully transparent (0,0,0,0);
    everything else is bilinear over R, G, B with alpha forced to 255.

    Args:
        image: (H, W, 4) uint8 RGBA source.
        homography: destination -> source map.
        out_width/out_height: output size, both > 0.

    Returns:
        (out_height, out_width, 4) uint8 RGBA.
    """
    check_raster(image)
    out_w, out_h = int(out_width), int(out_height)
    if out_w <= 0 or out_h <= 0:
        raise InvalidInput(f"Output size must be positive, got {out_w}x{out_h}")
    H, W = image.shape[:2]
    h = homography.h

    xs, ys = np.meshgrid(np.arange(out_w, dtype=np.float64), np.arange(out_h, dtype=np.float64))
    denom = h[6] * xs + h[7] * ys + h[8]
    flat = denom == 0
    denom = np.where(flat, 1.0, denom)
    with np.errstate(over="ignore", invalid="ignore"):
        sx = np.where(flat, xs, (h[0] * xs + h[1] * ys + h[2]) / denom)
        sy = np.where(flat, ys, (h[3] * xs + h[4] * ys + h[5]) / denom)
    inside = (sx >= 0) & (sx < W) & (sy >= 0) & (sy < H)

    out = np.zeros((out_h, out_w, 4), dtype=np.uint8)
    px = sx[inside]
    py = sy[inside]
    x0 = np.floor(px).astype(np.intp)
    y0 = np.floor(py).astype(np.intp)
    x1 = np.minimum(x0 + 1, W - 1)
    y1 = np.minimum(y0 + 1, H - 1)
    fx = (px - x0)[:, None]
    fy = (py - y0)[:, None]

    rgb = image[:, :, :3].astype(np.float64)
    val = ((1 - fx) * (1 - fy) * rgb[y0, x0]
           + fx * (1 - fy) * rgb[y0, x1]
           + (1 - fx) * fy * rgb[y1, x0]
           + fx * fy * rgb[y1, x1])
    out[inside, :3] = np.clip(np.floor(val + 0.5), 0, 255).astype(np.uint8)
    out[inside, 3] = 255

    if debug:
        skipped = inside.size - int(inside.sum())
        print(f"[rectify] {W}x{H} -> {out_w}x{out_h}, {skipped} transparent pixels")
    return out


def warp_document(
    image: np.ndarray,
    corners: Union[Corners, np.ndarray],
    *,
    width: Optional[int] = None,
    height: Optional[int] = None,
    cfg: Optional[Dict] = None,
) -> np.ndarray:
    """
    Flatten the quad `corners` (TL, TR, BR, BL) of `image` into a rectangle.

    Missing width/height default to the longest opposite edge lengths.
    Raises DegenerateGeometry for collinear corners.
    """
    if not isinstance(corners, Corners):
        corners = Corners(pts=np.asarray(corners, dtype=np.float32))
    dst_w, dst_h = compute_target_size(corners, width=width, height=height)
    if dst_w <= 0 or dst_h <= 0:
        raise InvalidInput(f"Corners give an empty output size {dst_w}x{dst_h}")
    Hmat = solve(corners, rectangle(dst_w, dst_h))
    return rectify(image, Hmat, dst_w, dst_h, debug=bool((cfg or {}).get("debug")))


def enhance_contrast(image: np.ndarray, contrast: float = 1.3, brightness: float = 1.05) -> np.ndarray:
    """
    Stretch R/G/B about mid-grey by `contrast`, then scale by `brightness`.
    Alpha is left alone.
    """
    check_raster(image)
    rgb = image[:, :, :3].astype(np.float64) / 255.0
    rgb = ((rgb - 0.5) * float(contrast) + 0.5) * float(brightness)
    out = image.copy()
    out[:, :, :3] = np.clip(np.floor(rgb * 255.0 + 0.5), 0, 255).astype(np.uint8)
    return out
