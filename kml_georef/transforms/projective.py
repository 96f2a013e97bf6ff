"""Planar 3x3 homogeneous transforms.

All matrices are ``numpy`` 3x3 ``float64`` arrays acting on column
vectors ``(x, y, 1)``. Composition follows the usual convention:
"post-apply B after A" is ``B @ A``.

``poly_to_poly`` is the correspondence solver used by the geo/image
transforms and by the warp estimator. It never raises for degenerate
input; instead it returns ``Singular`` so callers can decide what to
do (report "pick better-separated points", treat an overlay as
unusable, ...).

Solver by point count:

=====  =====================================================
count  fitted transform
=====  =====================================================
0      identity
1      translation
2      similarity (rotation + uniform scale + translation)
3      affine
4      projective (homography)
=====  =====================================================
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy.typing as npt

    Matrix = npt.NDArray[np.float64]
    PointPairs = Sequence[tuple[float, float]] | npt.NDArray[np.float64]

# Condition numbers above this mean the normalised system is numerically
# singular (collinear or coincident points).
_MAX_CONDITION = 1e10

_EPSILON = 1e-12


# ---------------------------------------------------------------------------
# Fit results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, eq=False)
class Solved:
    """A successfully fitted transform."""

    matrix: Matrix

    ok = True


@dataclass(frozen=True, slots=True)
class Singular:
    """The correspondence set admits no unique, invertible transform."""

    reason: str

    ok = False


FitResult = Solved | Singular


# ---------------------------------------------------------------------------
# Elementary matrices
# ---------------------------------------------------------------------------


def identity() -> Matrix:
    return np.eye(3, dtype=np.float64)


def translation(dx: float, dy: float) -> Matrix:
    return np.array([[1.0, 0.0, dx], [0.0, 1.0, dy], [0.0, 0.0, 1.0]])


def rotation_about(degrees: float, px: float = 0.0, py: float = 0.0) -> Matrix:
    """Rotation by *degrees* about ``(px, py)``.

    In a y-down frame a positive angle turns clockwise on screen.
    """
    rad = math.radians(degrees)
    c, s = math.cos(rad), math.sin(rad)
    return np.array(
        [
            [c, -s, s * py + (1.0 - c) * px],
            [s, c, -s * px + (1.0 - c) * py],
            [0.0, 0.0, 1.0],
        ]
    )


def scale_about(sx: float, sy: float, px: float = 0.0, py: float = 0.0) -> Matrix:
    return np.array(
        [
            [sx, 0.0, px - sx * px],
            [0.0, sy, py - sy * py],
            [0.0, 0.0, 1.0],
        ]
    )


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def map_point(matrix: Matrix, x: float, y: float) -> tuple[float, float]:
    """Map one point, including the perspective divide."""
    u, v, w = matrix @ np.array([x, y, 1.0])
    if abs(w) < _EPSILON:
        return (math.inf, math.inf)
    return (float(u / w), float(v / w))


def map_points(matrix: Matrix, points: PointPairs) -> npt.NDArray[np.float64]:
    """Map an ``(N, 2)`` array of points, including the perspective divide."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    homogeneous = np.hstack([pts, np.ones((len(pts), 1))]) @ matrix.T
    return homogeneous[:, :2] / homogeneous[:, 2:3]


def map_vector(matrix: Matrix, dx: float, dy: float) -> tuple[float, float]:
    """Map a displacement through the linear part of an affine matrix."""
    u, v = matrix[:2, :2] @ np.array([dx, dy])
    return (float(u), float(v))


def invert(matrix: Matrix) -> FitResult:
    """Invert a transform, reporting ``Singular`` instead of raising."""
    if not np.all(np.isfinite(matrix)):
        return Singular("transform has non-finite entries")
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError as exc:
        return Singular(f"transform is not invertible: {exc}")
    if not np.all(np.isfinite(inverse)):
        return Singular("transform is not invertible")
    return Solved(inverse)


# ---------------------------------------------------------------------------
# Correspondence solver
# ---------------------------------------------------------------------------


def poly_to_poly(src: PointPairs, dst: PointPairs) -> FitResult:
    """Fit the transform mapping each ``src[i]`` onto ``dst[i]``.

    Args:
        src: Up to four source points as ``(x, y)`` pairs.
        dst: Destination points, same length as *src*.

    Returns:
        ``Solved`` with the 3x3 matrix, or ``Singular`` when the points
        are coincident / collinear and no invertible transform exists.

    Raises:
        ValueError: If the point lists differ in length or hold more
            than four points.
    """
    src_pts = np.asarray(src, dtype=np.float64).reshape(-1, 2)
    dst_pts = np.asarray(dst, dtype=np.float64).reshape(-1, 2)
    if len(src_pts) != len(dst_pts):
        msg = f"Point count mismatch: {len(src_pts)} source vs {len(dst_pts)} destination"
        raise ValueError(msg)
    count = len(src_pts)
    if count > 4:
        msg = f"At most 4 correspondences are supported, got {count}"
        raise ValueError(msg)
    if not (np.all(np.isfinite(src_pts)) and np.all(np.isfinite(dst_pts))):
        return Singular("non-finite coordinates")

    if count == 0:
        return Solved(identity())
    if count == 1:
        dx, dy = dst_pts[0] - src_pts[0]
        return Solved(translation(float(dx), float(dy)))
    if count == 2:
        return _similarity(src_pts, dst_pts)

    src_norm, src_t = _normalize(src_pts)
    dst_norm, dst_t = _normalize(dst_pts)
    if src_t is None or dst_t is None:
        return Singular("coincident points")

    fitted = _affine(src_norm, dst_norm) if count == 3 else _homography(src_norm, dst_norm)
    if isinstance(fitted, Singular):
        return fitted
    if np.linalg.cond(fitted) > _MAX_CONDITION:
        return Singular("fitted transform is degenerate")

    matrix = np.linalg.inv(dst_t) @ fitted @ src_t
    if abs(matrix[2, 2]) > _EPSILON:
        matrix = matrix / matrix[2, 2]
    return Solved(matrix)


def _normalize(
    points: npt.NDArray[np.float64],
) -> tuple[npt.NDArray[np.float64], Matrix | None]:
    """Centre points on their centroid and scale to mean distance sqrt(2)."""
    centroid = points.mean(axis=0)
    mean_dist = float(np.mean(np.hypot(*(points - centroid).T)))
    if mean_dist < _EPSILON:
        return points, None
    s = math.sqrt(2.0) / mean_dist
    t = np.array(
        [
            [s, 0.0, -s * centroid[0]],
            [0.0, s, -s * centroid[1]],
            [0.0, 0.0, 1.0],
        ]
    )
    return (points - centroid) * s, t


def _similarity(src: npt.NDArray[np.float64], dst: npt.NDArray[np.float64]) -> FitResult:
    s1, s2 = complex(*src[0]), complex(*src[1])
    d1, d2 = complex(*dst[0]), complex(*dst[1])
    if abs(s2 - s1) < _EPSILON or abs(d2 - d1) < _EPSILON:
        return Singular("coincident points")
    a = (d2 - d1) / (s2 - s1)
    b = d1 - a * s1
    return Solved(
        np.array(
            [
                [a.real, -a.imag, b.real],
                [a.imag, a.real, b.imag],
                [0.0, 0.0, 1.0],
            ]
        )
    )


def _affine(src: npt.NDArray[np.float64], dst: npt.NDArray[np.float64]) -> Matrix | Singular:
    a = np.hstack([src, np.ones((3, 1))])
    if np.linalg.cond(a) > _MAX_CONDITION:
        return Singular("collinear points")
    try:
        row_x = np.linalg.solve(a, dst[:, 0])
        row_y = np.linalg.solve(a, dst[:, 1])
    except np.linalg.LinAlgError as exc:
        return Singular(f"collinear points: {exc}")
    return np.vstack([row_x, row_y, [0.0, 0.0, 1.0]])


def _homography(src: npt.NDArray[np.float64], dst: npt.NDArray[np.float64]) -> Matrix | Singular:
    rows = []
    rhs = []
    for (x, y), (u, v) in zip(src, dst, strict=True):
        rows.append([x, y, 1.0, 0.0, 0.0, 0.0, -u * x, -u * y])
        rhs.append(u)
        rows.append([0.0, 0.0, 0.0, x, y, 1.0, -v * x, -v * y])
        rhs.append(v)
    a = np.array(rows)
    if np.linalg.cond(a) > _MAX_CONDITION:
        return Singular("three or more points are collinear")
    try:
        h = np.linalg.solve(a, np.array(rhs))
    except np.linalg.LinAlgError as exc:
        return Singular(f"three or more points are collinear: {exc}")
    return np.append(h, 1.0).reshape(3, 3)
