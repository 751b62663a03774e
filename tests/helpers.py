"""Fakes shared by the tests: clock, camera, detector and landmark builders."""

import time
from typing import Callable, List, Optional

from motion.types import LandmarkSnapshot, Point


def pose(nose_dx: float = 0.0, nose_dy: float = 0.0, half_width: float = 0.1) -> LandmarkSnapshot:
    """Nose offset (nose_dx, nose_dy) from the shoulder center."""
    return LandmarkSnapshot(
        nose=Point(0.5 + nose_dx, 0.5 + nose_dy),
        left_shoulder=Point(0.5 - half_width, 0.5),
        right_shoulder=Point(0.5 + half_width, 0.5),
    )


class FakeClock:
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float):
        self.t += dt


class FakeCapture:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.released = 0
        self.reads = 0

    def read(self):
        self.reads += 1
        if not self.ok:
            return False, None
        return True, "frame"

    def release(self):
        self.released += 1


class FakeDetector:
    """Returns queued snapshots first, then `default` forever."""

    source = "fake"

    def __init__(self, queue: Optional[List[Optional[LandmarkSnapshot]]] = None, default=None):
        self.queue = list(queue or [])
        self.default = default
        self.closed = 0
        self.calls = 0

    def detect(self, frame, timestamp):
        self.calls += 1
        if self.queue:
            return self.queue.pop(0)
        return self.default

    def close(self):
        self.closed += 1


def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Polls `condition` in real time; used by the threaded worker tests."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return condition()
