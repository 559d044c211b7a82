"""
Homography solve: round trips, agreement with OpenCV, pivoting and
degenerate inputs.
"""
from __future__ import annotations
import numpy as np
import cv2
import pytest

from docscan.core.contracts import Corners, DegenerateGeometry, Homography, InvalidInput
from docscan.geometry.homography import rectangle, solve, solve_linear_system

SCENARIO = [[40, 30], [360, 50], [350, 580], [50, 560]]


def test_round_trip_reproduces_source_corners():
    dst = rectangle(320, 530)
    H = solve(SCENARIO, dst)
    for (dx, dy), (sx, sy) in zip(dst, SCENARIO):
        x, y = H.apply(dx, dy)
        assert abs(x - sx) < 1e-3
        assert abs(y - sy) < 1e-3


def test_ninth_coefficient_is_one():
    H = solve(Corners.from_points(SCENARIO), rectangle(320, 530))
    assert len(H.h) == 9
    assert H.h[8] == 1.0


def test_matches_opencv_perspective_transform():
    dst = rectangle(320, 530)
    H = solve(SCENARIO, dst)
    ref = cv2.getPerspectiveTransform(dst.astype(np.float32), np.asarray(SCENARIO, np.float32))
    ref = ref / ref[2, 2]
    assert np.allclose(H.as_matrix(), ref, rtol=1e-4, atol=1e-6)


def test_identity_for_matching_rectangles():
    H = solve(rectangle(40, 30), rectangle(40, 30))
    assert np.allclose(H.as_matrix(), np.eye(3), atol=1e-12)


@pytest.mark.parametrize("seed", range(5))
def test_round_trip_on_random_quads(seed):
    rng = np.random.default_rng(seed)
    base = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], np.float64) * [800, 1100]
    src = base + rng.uniform(-60, 60, size=(4, 2)) + 100
    dst = rectangle(600, 900)
    H = solve(src, dst)
    for (dx, dy), (sx, sy) in zip(dst, src):
        x, y = H.apply(dx, dy)
        assert abs(x - sx) < 1e-3 and abs(y - sy) < 1e-3


def test_collinear_corners_are_degenerate():
    with pytest.raises(DegenerateGeometry):
        solve([[0, 0], [100, 0], [200, 0], [50, 80]], rectangle(100, 100))


def test_coincident_corners_are_degenerate():
    with pytest.raises(DegenerateGeometry):
        solve([[5, 5]] * 4, rectangle(100, 100))


def test_degenerate_destination_is_rejected():
    with pytest.raises(DegenerateGeometry):
        solve(SCENARIO, rectangle(0, 100))


def test_wrong_point_count_is_invalid():
    with pytest.raises(InvalidInput):
        solve([[0, 0], [1, 0], [1, 1]], rectangle(10, 10))


def test_partial_pivoting_handles_zero_leading_entry():
    a = np.array([[0.0, 1.0], [1.0, 0.0]])
    b = np.array([2.0, 3.0])
    assert solve_linear_system(a, b).tolist() == [3.0, 2.0]


def test_singular_system_raises():
    with pytest.raises(DegenerateGeometry):
        solve_linear_system(np.array([[1.0, 2.0], [2.0, 4.0]]), np.array([1.0, 2.0]))


def test_apply_falls_back_to_identity_on_zero_denominator():
    H = Homography(h=(2, 0, 0, 0, 2, 0, 0, 0, 0))
    assert H.apply(7.0, 3.0) == (7.0, 3.0)
