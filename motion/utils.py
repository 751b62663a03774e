# motion/utils.py
from typing import Optional, Sequence, Tuple

import numpy as np

from config import NOSE, LEFT_SHOULDER, RIGHT_SHOULDER
from motion.types import LandmarkSnapshot, Point


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def average(values: Sequence[float]) -> float:
    return float(sum(values)) / max(len(values), 1)


def lm_xy(lm) -> np.ndarray:
    return np.array([lm.x, lm.y], dtype=np.float64)


def dist(a, b) -> float:
    return float(np.linalg.norm(a - b))


def shoulder_geometry(snapshot: LandmarkSnapshot) -> Tuple[float, float, float]:
    """
    Returns (center_x, center_y, width) of the shoulder line.
    """
    left = lm_xy(snapshot.left_shoulder)
    right = lm_xy(snapshot.right_shoulder)
    center = (left + right) / 2.0
    return float(center[0]), float(center[1]), dist(left, right)


def _point_at(landmarks, index: int) -> Optional[Point]:
    try:
        lm = landmarks[index]
    except (IndexError, KeyError, TypeError):
        return None
    if lm is None:
        return None
    return Point(float(lm.x), float(lm.y))


def landmark_snapshot_from_points(landmarks) -> Optional[LandmarkSnapshot]:
    """
    Picks nose + both shoulders out of an indexable MediaPipe landmark list.
    """
    if not landmarks:
        return None
    return LandmarkSnapshot(
        nose=_point_at(landmarks, NOSE),
        left_shoulder=_point_at(landmarks, LEFT_SHOULDER),
        right_shoulder=_point_at(landmarks, RIGHT_SHOULDER),
    )
