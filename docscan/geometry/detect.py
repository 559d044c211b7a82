# docscan/geometry/detect.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import math
import numpy as np
import yaml

from docscan.core.contracts import Corners, InvalidInput
from docscan.geometry.filters import gradient_magnitude, luminance, smooth
from docscan.geometry.homography import rectangle

# Defaults match the reference photos from the signing app (phone camera, A4/letter)
_DEFAULT_CFG: Dict = {
    "blur_radius": 5,
    "edge_threshold": 50,          # magnitude must be strictly above this (0..255)
    "min_edge_points": 100,        # fewer edge pixels -> "no document"
    "dp_epsilon_start": 10.0,
    "dp_epsilon_step": 10.0,
    "dp_epsilon_max": 100.0,       # sweep stops before reaching this
    "enhance": {"contrast": 1.3, "brightness": 1.05},
    "debug": False,
}

Point = Tuple[float, float]


# ----------------------------------------------------------------------------- #
# Config                                                                        #
# ----------------------------------------------------------------------------- #

def merge_cfg(cfg: Optional[Dict]) -> Dict:
    if not cfg:
        return {k: (dict(v) if isinstance(v, dict) else v) for k, v in _DEFAULT_CFG.items()}
    merged = merge_cfg(None)
    for k, v in cfg.items():
        if k in merged and isinstance(merged[k], dict):
            if not isinstance(v, dict):
                raise ValueError(f"Config key '{k}' must be a mapping, got {type(v).__name__}")
            merged[k] = {**merged[k], **v}
        else:
            merged[k] = v
    return merged


def load_cfg(path: Union[str, Path]) -> Dict:
    """Read a YAML config file and merge it over the defaults."""
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config at {path} must be a mapping, got {type(data).__name__}")
    return merge_cfg(data)


# ----------------------------------------------------------------------------- #
# Geometry helpers                                                              #
# ----------------------------------------------------------------------------- #

def default_corners(width: float, height: float) -> Corners:
    """Full-image quad, used whenever no document outline is found."""
    return Corners(pts=rectangle(width, height))


def order_corners_clockwise(pts: np.ndarray) -> np.ndarray:
    """
    TL, TR, BR, BL from 4 unordered points: the two smallest y form the top
    pair, each pair is then sorted by x. No convexity check is made.
    """
    pts = np.asarray(pts, np.float32)
    if pts.shape != (4, 2):
        pts = pts.reshape(4, 2)
    sorted_y = pts[np.argsort(pts[:, 1], kind="stable")]
    top2 = sorted_y[:2]
    bottom2 = sorted_y[2:]
    tl, tr = top2[np.argsort(top2[:, 0], kind="stable")]
    bl, br = bottom2[np.argsort(bottom2[:, 0], kind="stable")]
    return np.array([tl, tr, br, bl], dtype=np.float32)


def _cross(o: Point, a: Point, b: Point) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: np.ndarray, debug: bool = False) -> np.ndarray:
    """
    Graham scan. The pivot is the point with the largest y (smallest x on
    ties); the rest are swept in polar-angle order around it (nearest first
    on equal angles). Returns an (N, 2) float64 array starting at the pivot;
    the polygon closes back onto it. Consecutive turns are strictly positive
    cross products, i.e. clockwise on screen (y down).
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return pts.copy()

    pivot_idx = int(np.lexsort((pts[:, 0], -pts[:, 1]))[0])
    pivot = pts[pivot_idx]
    rest = np.delete(pts, pivot_idx, axis=0)
    d = rest - pivot
    angle = np.arctan2(d[:, 1], d[:, 0])
    dist2 = d[:, 0] * d[:, 0] + d[:, 1] * d[:, 1]
    rest = rest[np.lexsort((dist2, angle))]

    hull: List[Point] = [(float(pivot[0]), float(pivot[1]))]
    for x, y in rest.tolist():
        while len(hull) > 1 and _cross(hull[-2], hull[-1], (x, y)) <= 0:
            hull.pop()
        hull.append((x, y))

    if debug:
        print(f"[hull] {len(pts)} points -> {len(hull)} vertices, pivot=({pivot[0]:.0f},{pivot[1]:.0f})")
    return np.array(hull, dtype=np.float64)


def _perpendicular_distances(pts: np.ndarray, start: np.ndarray, end: np.ndarray) -> np.ndarray:
    """Distance of each point to the infinite line start->end (to start if the chord is empty)."""
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    mag2 = dx * dx + dy * dy
    rel = pts - start
    if mag2 == 0:
        return np.hypot(rel[:, 0], rel[:, 1])
    return np.abs(rel[:, 0] * dy - rel[:, 1] * dx) / math.sqrt(mag2)


def _dp_indices(pts: np.ndarray, start: int, end: int, epsilon: float) -> List[int]:
    if end - start < 2:
        return list(range(start, end + 1))
    d = _perpendicular_distances(pts[start + 1:end], pts[start], pts[end])
    i = int(np.argmax(d))
    if d[i] > epsilon:
        split = start + 1 + i
        left = _dp_indices(pts, start, split, epsilon)
        right = _dp_indices(pts, split, end, epsilon)
        return left[:-1] + right
    return [start, end]


def douglas_peucker(points: np.ndarray, epsilon: float) -> np.ndarray:
    """Open-polyline Douglas-Peucker; both endpoints are always kept."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) < 3:
        return pts.copy()
    return pts[_dp_indices(pts, 0, len(pts) - 1, float(epsilon))]


def simplify_to_quad(hull: np.ndarray, width: int, height: int, cfg: Optional[Dict] = None) -> np.ndarray:
    """
    Reduce a hull to (ideally) 4 points: Douglas-Peucker with a growing
    epsilon, then the 4 points farthest from the image centre if that was
    not enough. May return fewer than 4 points.
    """
    cfg = merge_cfg(cfg)
    simplified = np.asarray(hull, dtype=np.float64).reshape(-1, 2)
    if len(simplified) <= 4:
        return simplified

    eps = float(cfg["dp_epsilon_start"])
    step = float(cfg["dp_epsilon_step"])
    eps_max = float(cfg["dp_epsilon_max"])
    while len(simplified) > 4 and eps < eps_max:
        simplified = douglas_peucker(simplified, eps)
        if cfg.get("debug"):
            print(f"[simplify] eps={eps:.0f} -> {len(simplified)} points")
        eps += step

    if len(simplified) > 4:
        center = np.array([width / 2.0, height / 2.0])
        dist = np.hypot(*(simplified - center).T)
        simplified = simplified[np.argsort(-dist, kind="stable")[:4]]
        if cfg.get("debug"):
            print("[simplify] kept 4 points farthest from centre")
    return simplified


def edge_points(edge_field: np.ndarray, threshold: float) -> np.ndarray:
    """(N, 2) x/y coordinates of pixels strictly above threshold, row-major order."""
    ys, xs = np.nonzero(np.asarray(edge_field) > threshold)
    return np.column_stack((xs, ys)).astype(np.float64)


# ----------------------------------------------------------------------------- #
# Public entry points                                                           #
# ----------------------------------------------------------------------------- #

def find_corners(edge_field: np.ndarray, width: int, height: int, cfg: Optional[Dict] = None) -> Optional[Corners]:
    """
    Threshold -> convex hull -> 4-point simplification -> canonical order.
    Returns None when there is not enough edge signal or no quad survives;
    callers fall back to default_corners(width, height).
    """
    cfg = merge_cfg(cfg)
    debug = bool(cfg.get("debug"))
    edges = np.asarray(edge_field)
    if edges.ndim == 3:
        edges = luminance(edges)
    edges = edges[:int(height), :int(width)]

    pts = edge_points(edges, float(cfg["edge_threshold"]))
    if len(pts) < int(cfg["min_edge_points"]):
        if debug:
            print(f"[detect] only {len(pts)} edge points (need {cfg['min_edge_points']}) -> no document")
        return None

    hull = convex_hull(pts, debug=debug)
    if len(hull) < 3:
        if debug: print(f"[detect] hull too small: {len(hull)}")
        return None

    quad = simplify_to_quad(hull, width, height, cfg)
    if len(quad) != 4:
        if debug: print(f"[detect] simplification left {len(quad)} points -> no document")
        return None

    ordered = order_corners_clockwise(quad)
    if debug:
        print(f"[detect] corners={ordered.tolist()}")
    return Corners(pts=ordered)


def detect(image: np.ndarray, cfg: Optional[Dict] = None) -> Optional[Corners]:
    """Run blur -> Sobel -> find_corners on an RGBA (or gray) raster."""
    cfg = merge_cfg(cfg)
    img = np.asarray(image)
    if img.ndim < 2 or img.shape[0] <= 0 or img.shape[1] <= 0:
        raise InvalidInput(f"Zero-area raster: shape {img.shape}")
    H, W = img.shape[:2]
    blurred = smooth(img, radius=int(cfg["blur_radius"]))
    edges = gradient_magnitude(blurred)
    return find_corners(edges, W, H, cfg)
