"""
Joint angle computation from 2D landmark positions.

Angles are measured in the image plane (x, y); depth (z) is ignored.
Landmarks whose visibility is missing or below the visibility threshold
are not used.
"""

import math
from typing import Optional, Sequence

from .config import VISIBILITY_THRESHOLD
from .state import Landmark

# Landmark indices per muscle group (MediaPipe Pose numbering).
# The angle is measured at the second of the first three visible points.
MUSCLE_GROUP_LANDMARKS: dict[str, list[int]] = {
    "shoulders": [11, 12, 23, 24],
    "arms": [11, 12, 13, 14, 15, 16],
    "core": [11, 12, 23, 24],
    "legs": [23, 24, 25, 26, 27, 28],
    "back": [11, 12, 23, 24],
    "neck": [0, 11, 12],
    "hips": [23, 24],
    "knees": [25, 26],
}


def is_visible(lm: Optional[Landmark], threshold: float = VISIBILITY_THRESHOLD) -> bool:
    return lm is not None and lm.visibility is not None and lm.visibility >= threshold


def _vertex_angle(p1: Landmark, p2: Landmark, p3: Landmark) -> float:
    radians = math.atan2(p3.y - p2.y, p3.x - p2.x) - math.atan2(p1.y - p2.y, p1.x - p2.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def angle_at(
    p1: Landmark,
    p2: Landmark,
    p3: Landmark,
    visibility_threshold: float = VISIBILITY_THRESHOLD,
) -> Optional[float]:
    """Angle at vertex *p2* in degrees, in ``[0, 180]``.

    Returns None when any of the three points is not visible enough.
    """
    if not all(is_visible(p, visibility_threshold) for p in (p1, p2, p3)):
        return None
    return _vertex_angle(p1, p2, p3)


def muscle_group_angle(
    landmarks: Sequence[Landmark],
    indices: Sequence[int],
    visibility_threshold: float = VISIBILITY_THRESHOLD,
) -> Optional[float]:
    """Angle for a muscle group given its landmark indices.

    Visible landmarks are kept in index order and the first three define the
    angle (vertex = second). Fewer than three usable points → None.
    """
    points = [
        landmarks[i]
        for i in indices
        if 0 <= i < len(landmarks) and is_visible(landmarks[i], visibility_threshold)
    ]
    if len(points) < 3:
        return None
    return _vertex_angle(points[0], points[1], points[2])
