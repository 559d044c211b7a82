"""
Core contracts and simple data types shared across stages.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, Tuple
import numpy as np


class ScanError(Exception):
    """Base class for errors raised by the scan pipeline."""


class InvalidInput(ScanError, ValueError):
    """Zero-area, wrongly shaped or undecodable raster, or bad corner/size arguments."""


class DegenerateGeometry(ScanError, ValueError):
    """The homography system is singular (collinear or coincident correspondences)."""


@dataclass
class Corners:
    """
    The four document corners in image coordinates (pixels), ordered clockwise:
    [top-left, top-right, bottom-right, bottom-left].

    pts: np.ndarray with shape (4, 2), dtype float32
    """
    pts: np.ndarray

    def __post_init__(self) -> None:
        pts = np.asarray(self.pts, dtype=np.float32)
        if pts.size != 8:
            raise InvalidInput(f"Corners need exactly 4 (x, y) points, got shape {pts.shape}")
        self.pts = pts.reshape(4, 2)

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "Corners":
        return cls(pts=np.asarray(points, dtype=np.float32))

    def as_tuple(self) -> Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float], Tuple[float, float]]:
        return tuple(map(tuple, self.pts.tolist()))  # type: ignore[return-value]


@dataclass(frozen=True)
class Homography:
    """
    Projective map from destination-rectangle coordinates to source-image
    coordinates. Row-major 3x3 coefficients, h[8] fixed to 1.0.
    """
    h: Tuple[float, ...]

    def apply(self, x: float, y: float) -> Tuple[float, float]:
        h = self.h
        denom = h[6] * x + h[7] * y + h[8]
        if denom == 0:
            return x, y
        return (h[0] * x + h[1] * y + h[2]) / denom, (h[3] * x + h[4] * y + h[5]) / denom

    def as_matrix(self) -> np.ndarray:
        return np.asarray(self.h, dtype=np.float64).reshape(3, 3)
