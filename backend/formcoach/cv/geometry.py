"""Joint geometry used by the form rules."""

from typing import Optional, Sequence

import numpy as np

# Limb vectors shorter than this are treated as degenerate
_MIN_VECTOR_LENGTH = 1e-9


def angle_between(
    vertex: Sequence[float],
    point_a: Sequence[float],
    point_b: Sequence[float],
) -> Optional[float]:
    """
    Calculate the angle at `vertex` formed by `point_a` and `point_b`, in degrees.

    Uses the difference of the two vector bearings (atan2) and folds the
    magnitude into [0, 180], so swapping point_a and point_b gives the same
    value. Returns None when either vector has zero length.
    """
    b = np.asarray(vertex, dtype=float)
    v1 = np.asarray(point_a, dtype=float) - b
    v2 = np.asarray(point_b, dtype=float) - b

    if np.linalg.norm(v1) < _MIN_VECTOR_LENGTH or np.linalg.norm(v2) < _MIN_VECTOR_LENGTH:
        return None

    diff = np.arctan2(v2[1], v2[0]) - np.arctan2(v1[1], v1[0])
    angle = abs(float(np.degrees(diff)))
    if angle > 180.0:
        angle = 360.0 - angle

    return angle


def normalized_vertical_distance(knee_y: float, ankle_y: float) -> Optional[float]:
    """
    Knee-to-ankle vertical separation scaled by the knee's height above mid-frame.

    Small values mean the heel is raised relative to the knee. Returns None
    when the knee sits exactly at mid-frame and the ratio is undefined.
    """
    denominator = knee_y - 0.5
    if abs(denominator) < _MIN_VECTOR_LENGTH:
        return None
    return (knee_y - ankle_y) / denominator
