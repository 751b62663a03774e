# motion/types.py
from dataclasses import dataclass
from typing import Literal, Optional

Direction = Literal["up", "down", "left", "right"]
DIRECTIONS = ("up", "down", "left", "right")


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class LandmarkSnapshot:
    """Landmarks used by the head controller, normalized to [0, 1] image space."""
    nose: Optional[Point] = None
    left_shoulder: Optional[Point] = None
    right_shoulder: Optional[Point] = None

    def is_complete(self) -> bool:
        return (
            self.nose is not None
            and self.left_shoulder is not None
            and self.right_shoulder is not None
        )


@dataclass
class Baseline:
    """Neutral pose: nose offset from the shoulder center, plus shoulder width."""
    nose_offset_x: float
    nose_offset_y: float
    shoulder_width: float


@dataclass(frozen=True)
class DirectionSignal:
    direction: Direction
    confidence: float


@dataclass(frozen=True)
class DirectionEvent:
    direction: Direction
    confidence: float         # [0, 1]
    timestamp: float          # monotonic seconds


@dataclass(frozen=True)
class MotionSnapshot:
    tracking: bool = False
    calibrated: bool = False
    fps: int = 0
    debug: str = "Idle"
    last_direction: Optional[Direction] = None


@dataclass(frozen=True)
class TickResult:
    tracking: bool
    debug: str
    event: Optional[DirectionEvent] = None
    camera_failed: bool = False
