# motion/classifier.py
import logging
from typing import Optional

from config import (
    MIN_SHOULDER_WIDTH, SENSITIVITY, MIN_SENSITIVITY, THRESHOLD_K,
    SMOOTHING_ALPHA, DRIFT_BLEND, NEUTRAL_X_RATIO, NEUTRAL_Y_RATIO,
    HORIZONTAL_RATIO, DOWN_RATIO, UP_RATIO, DOMINANCE_RATIO, CONFIDENCE_SPAN,
    HIGH_CONFIDENCE, SAME_DIRECTION_GAP_SEC, DIRECTION_CHANGE_GAP_SEC,
)
from motion.types import (
    Baseline, Direction, DirectionEvent, DirectionSignal, LandmarkSnapshot, TickResult,
)
from motion.utils import clamp01, shoulder_geometry

logger = logging.getLogger(__name__)


def resolve_direction(dx: float, dy: float, threshold: float) -> Optional[DirectionSignal]:
    """
    Maps a smoothed deviation onto a direction.

    Horizontal wins only when it clearly dominates; down needs less travel
    than up (nodding has a larger natural range than tilting back).
    """
    horizontal_threshold = threshold * HORIZONTAL_RATIO
    down_threshold = threshold * DOWN_RATIO
    up_threshold = threshold * UP_RATIO

    abs_x = abs(dx)
    abs_y = abs(dy)

    if abs_x >= abs_y * DOMINANCE_RATIO and abs_x > horizontal_threshold:
        return DirectionSignal(
            direction="right" if dx > 0 else "left",
            confidence=clamp01(abs_x / (horizontal_threshold * CONFIDENCE_SPAN)),
        )

    if abs_y >= abs_x * DOMINANCE_RATIO:
        if dy > down_threshold:
            return DirectionSignal("down", clamp01(dy / (down_threshold * CONFIDENCE_SPAN)))
        if dy < -up_threshold:
            return DirectionSignal("up", clamp01(-dy / (up_threshold * CONFIDENCE_SPAN)))

    return None


class DirectionClassifier:
    """
    Per-tick head direction classifier.

    Normalizes the nose offset against the calibrated baseline, smooths it,
    resolves a direction and debounces it into at most one DirectionEvent
    per tick. The baseline slowly follows the user while they sit near neutral.
    """

    def __init__(self, sensitivity: float = SENSITIVITY, mirror_horizontal: bool = True):
        self.sensitivity = sensitivity
        self.mirror_horizontal = mirror_horizontal
        self.baseline: Optional[Baseline] = None

        self.smoothed_dx = 0.0
        self.smoothed_dy = 0.0
        self.candidate_direction: Optional[Direction] = None
        self.candidate_frame_count = 0
        self.candidate_confidence = 0.0
        self.last_emitted_direction: Optional[Direction] = None
        self.last_emit_at: Optional[float] = None

    @property
    def calibrated(self) -> bool:
        return self.baseline is not None

    def set_baseline(self, baseline: Baseline):
        self.baseline = baseline
        self.reset_transient()

    def clear_baseline(self):
        self.baseline = None
        self.reset_transient()

    def reset_candidate(self):
        self.candidate_direction = None
        self.candidate_frame_count = 0
        self.candidate_confidence = 0.0

    def reset_transient(self):
        self.smoothed_dx = 0.0
        self.smoothed_dy = 0.0
        self.reset_candidate()
        self.last_emitted_direction = None
        self.last_emit_at = None

    def threshold_for(self, shoulder_width: float) -> float:
        normalized_width = (shoulder_width + self.baseline.shoulder_width) / 2.0
        return (THRESHOLD_K / max(self.sensitivity, MIN_SENSITIVITY)) * normalized_width

    def update(self, snapshot: Optional[LandmarkSnapshot], now: float) -> TickResult:
        if snapshot is None:
            self.reset_transient()
            return TickResult(tracking=False, debug="Tracking lost")
        if not snapshot.is_complete():
            self.reset_transient()
            return TickResult(tracking=False, debug="Need nose + shoulders in frame")

        baseline = self.baseline
        if baseline is None:
            return TickResult(tracking=True, debug="Ready to calibrate")

        center_x, center_y, shoulder_width = shoulder_geometry(snapshot)
        if shoulder_width < MIN_SHOULDER_WIDTH:
            return TickResult(tracking=True, debug="Tracking")

        offset_x = snapshot.nose.x - center_x
        offset_y = snapshot.nose.y - center_y
        dx = offset_x - baseline.nose_offset_x
        dy = offset_y - baseline.nose_offset_y
        if self.mirror_horizontal:
            dx = -dx

        threshold = self.threshold_for(shoulder_width)

        a = SMOOTHING_ALPHA
        self.smoothed_dx = self.smoothed_dx * (1.0 - a) + dx * a
        self.smoothed_dy = self.smoothed_dy * (1.0 - a) + dy * a

        near_neutral = (
            abs(self.smoothed_dx) < threshold * NEUTRAL_X_RATIO
            and abs(self.smoothed_dy) < threshold * NEUTRAL_Y_RATIO
        )
        if near_neutral:
            # follow posture drift with the raw offsets, not the smoothed ones
            b = DRIFT_BLEND
            baseline.nose_offset_x = baseline.nose_offset_x * (1.0 - b) + offset_x * b
            baseline.nose_offset_y = baseline.nose_offset_y * (1.0 - b) + offset_y * b
            baseline.shoulder_width = baseline.shoulder_width * (1.0 - b) + shoulder_width * b

        signal = resolve_direction(self.smoothed_dx, self.smoothed_dy, threshold)
        if signal is None:
            self.reset_candidate()
            return TickResult(tracking=True, debug="Micro movement ignored")

        return self._debounce(signal, now)

    def _debounce(self, signal: DirectionSignal, now: float) -> TickResult:
        if signal.direction != self.candidate_direction:
            self.candidate_direction = signal.direction
            self.candidate_frame_count = 1
            self.candidate_confidence = signal.confidence
        else:
            self.candidate_frame_count += 1
            self.candidate_confidence = max(self.candidate_confidence, signal.confidence)

        required_frames = 1 if self.candidate_confidence >= HIGH_CONFIDENCE else 2
        repeat = signal.direction == self.last_emitted_direction
        min_gap = SAME_DIRECTION_GAP_SEC if repeat else DIRECTION_CHANGE_GAP_SEC
        gap_ok = self.last_emit_at is None or now - self.last_emit_at >= min_gap

        if self.candidate_frame_count < required_frames or not gap_ok:
            return TickResult(tracking=True, debug="Tracking")

        if repeat:
            # already signaled; wait for a real direction change
            self.reset_candidate()
            return TickResult(tracking=True, debug="Tracking")

        event = DirectionEvent(
            direction=signal.direction,
            confidence=self.candidate_confidence,
            timestamp=now,
        )
        self.last_emitted_direction = signal.direction
        self.last_emit_at = now
        self.reset_candidate()
        logger.debug("Direction %s (confidence %.2f)", event.direction, event.confidence)
        return TickResult(tracking=True, debug=f"Direction: {event.direction}", event=event)
