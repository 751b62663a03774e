# motion/calibration.py
import logging
import time
from typing import Callable, List, Optional

from config import (
    CALIBRATION_MAX_SAMPLES, CALIBRATION_MIN_SAMPLES, CALIBRATION_BUDGET_SEC,
    MIN_SHOULDER_WIDTH, FRAME_WAIT_SEC,
)
from motion.errors import CalibrationFailed
from motion.types import Baseline, LandmarkSnapshot
from motion.utils import average, shoulder_geometry

logger = logging.getLogger(__name__)


def baseline_sample(snapshot: Optional[LandmarkSnapshot]) -> Optional[Baseline]:
    """
    One calibration sample, or None when the landmarks are unusable
    (missing nose/shoulders, or shoulders collapsed below the noise floor).
    """
    if snapshot is None or not snapshot.is_complete():
        return None

    center_x, center_y, width = shoulder_geometry(snapshot)
    if width < MIN_SHOULDER_WIDTH:
        return None

    return Baseline(
        nose_offset_x=snapshot.nose.x - center_x,
        nose_offset_y=snapshot.nose.y - center_y,
        shoulder_width=width,
    )


def average_baseline(samples: List[Baseline]) -> Baseline:
    return Baseline(
        nose_offset_x=average([s.nose_offset_x for s in samples]),
        nose_offset_y=average([s.nose_offset_y for s in samples]),
        shoulder_width=average([s.shoulder_width for s in samples]),
    )


def sleep_one_frame():
    time.sleep(FRAME_WAIT_SEC)


class BaselineCalibrator:
    """
    Collects neutral-pose samples until `max_samples` valid ones were seen or
    `budget_sec` ran out, then averages them.

    `sample_fn` is polled once per frame; `wait` yields between polls so the
    detector and UI keep running.
    """

    def __init__(
        self,
        max_samples: int = CALIBRATION_MAX_SAMPLES,
        min_samples: int = CALIBRATION_MIN_SAMPLES,
        budget_sec: float = CALIBRATION_BUDGET_SEC,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[], None] = sleep_one_frame,
    ):
        self.max_samples = max_samples
        self.min_samples = min_samples
        self.budget_sec = budget_sec
        self.clock = clock
        self.wait = wait

    def collect(self, sample_fn: Callable[[], Optional[LandmarkSnapshot]]) -> List[Baseline]:
        samples: List[Baseline] = []
        started_at = self.clock()
        while len(samples) < self.max_samples and self.clock() - started_at < self.budget_sec:
            sample = baseline_sample(sample_fn())
            if sample is not None:
                samples.append(sample)
            self.wait()
        return samples

    def run(self, sample_fn: Callable[[], Optional[LandmarkSnapshot]]) -> Baseline:
        samples = self.collect(sample_fn)
        if len(samples) < self.min_samples:
            logger.info("Calibration failed: %d/%d valid samples", len(samples), self.min_samples)
            raise CalibrationFailed(
                "Calibration needs nose + shoulders visible and stable "
                f"({len(samples)}/{self.min_samples} valid samples)."
            )

        baseline = average_baseline(samples)
        logger.info("Calibrated from %d samples: %s", len(samples), baseline)
        return baseline
