# docscan/geometry/homography.py
"""
8-parameter perspective solve for a 4-point correspondence.

The returned Homography maps *destination* (rectified) coordinates back into
the source photo, so the rectifier can pull one sample per output pixel.
"""
from __future__ import annotations
from itertools import combinations
from typing import List, Union
import numpy as np

from docscan.core.contracts import Corners, DegenerateGeometry, Homography, InvalidInput

QuadLike = Union[Corners, np.ndarray, List]

# Relative tolerances (scaled by the magnitude of the inputs)
_COLLINEAR_TOL = 1e-9
_PIVOT_TOL = 1e-12


def _as_quad(quad: QuadLike, name: str) -> np.ndarray:
    pts = quad.pts if isinstance(quad, Corners) else quad
    q = np.asarray(pts, dtype=np.float64)
    if q.size != 8:
        raise InvalidInput(f"{name} must have exactly 4 (x, y) points, got shape {q.shape}")
    q = q.reshape(4, 2)
    if not np.isfinite(q).all():
        raise InvalidInput(f"{name} has non-finite coordinates")
    return q


def _has_collinear_triple(q: np.ndarray) -> bool:
    span = float(np.ptp(q, axis=0).max())
    if span == 0.0:
        return True
    tol = _COLLINEAR_TOL * span * span
    for a, b, c in combinations(range(4), 3):
        area2 = (q[b, 0] - q[a, 0]) * (q[c, 1] - q[a, 1]) - (q[b, 1] - q[a, 1]) * (q[c, 0] - q[a, 0])
        if abs(area2) <= tol:
            return True
    return False


def build_system(source: np.ndarray, dest: np.ndarray):
    """
    Two rows per correspondence for
        sx = (h0 dx + h1 dy + h2) / (h6 dx + h7 dy + 1)
        sy = (h3 dx + h4 dy + h5) / (h6 dx + h7 dy + 1)
    """
    a = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i in range(4):
        dx, dy = dest[i]
        sx, sy = source[i]
        a[2 * i] = [dx, dy, 1, 0, 0, 0, -sx * dx, -sx * dy]
        b[2 * i] = sx
        a[2 * i + 1] = [0, 0, 0, dx, dy, 1, -sy * dx, -sy * dy]
        b[2 * i + 1] = sy
    return a, b


def solve_linear_system(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Gaussian elimination with partial pivoting, then back-substitution.
    Raises DegenerateGeometry on a (numerically) zero pivot.
    """
    n = len(b)
    aug = np.hstack([np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64).reshape(n, 1)])
    tol = _PIVOT_TOL * max(1.0, float(np.abs(aug[:, :n]).max()))

    for i in range(n):
        # row with the largest |value| in column i goes on top
        max_row = i
        for k in range(i + 1, n):
            if abs(aug[k, i]) > abs(aug[max_row, i]):
                max_row = k
        if max_row != i:
            aug[[i, max_row]] = aug[[max_row, i]]

        pivot = aug[i, i]
        if abs(pivot) <= tol:
            raise DegenerateGeometry(f"Singular system: pivot {pivot:.3e} in column {i}")
        for k in range(i + 1, n):
            c = aug[k, i] / pivot
            aug[k, i:] -= c * aug[i, i:]

    x = np.zeros(n, dtype=np.float64)
    for i in range(n - 1, -1, -1):
        x[i] = (aug[i, n] - np.dot(aug[i, i + 1:n], x[i + 1:n])) / aug[i, i]

    if not np.isfinite(x).all():
        raise DegenerateGeometry("Non-finite homography coefficients")
    return x


def solve(source_quad: QuadLike, dest_quad: QuadLike) -> Homography:
    """
    Homography taking dest_quad[i] to source_quad[i] (i = 0..3), h8 = 1.
    Convexity is not checked; three collinear points in either quad are.
    """
    src = _as_quad(source_quad, "source quad")
    dst = _as_quad(dest_quad, "destination quad")
    if _has_collinear_triple(src):
        raise DegenerateGeometry(f"Source corners are collinear or coincident: {src.tolist()}")
    if _has_collinear_triple(dst):
        raise DegenerateGeometry(f"Destination corners are collinear or coincident: {dst.tolist()}")

    a, b = build_system(src, dst)
    h = solve_linear_system(a, b)
    return Homography(h=tuple(float(v) for v in h) + (1.0,))


def rectangle(width: float, height: float) -> np.ndarray:
    """Destination quad (0,0) (W,0) (W,H) (0,H)."""
    w, h = float(width), float(height)
    return np.array([[0, 0], [w, 0], [w, h], [0, h]], dtype=np.float64)
