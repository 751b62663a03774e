# motion/detector.py
import logging
from typing import Optional, Protocol, Sequence

import cv2

from config import (
    POSE_MODEL_CANDIDATES, POSE_USE_LEGACY_FALLBACK,
    POSE_MIN_DETECTION_CONFIDENCE, POSE_MIN_TRACKING_CONFIDENCE,
)
from motion.errors import ModelInitFailed
from motion.types import LandmarkSnapshot
from motion.utils import landmark_snapshot_from_points

logger = logging.getLogger(__name__)


class PoseDetector(Protocol):
    source: str

    def detect(self, frame, timestamp: float) -> Optional[LandmarkSnapshot]: ...

    def close(self) -> None: ...


def _import_mediapipe():
    try:
        import mediapipe as mp
    except ImportError as e:
        raise ModelInitFailed("MediaPipe is not installed: pip install mediapipe") from e
    return mp


class MediaPipePoseDetector:
    """
    MediaPipe Tasks PoseLandmarker in VIDEO mode, single person.
    """

    def __init__(self, model_path: str):
        mp = _import_mediapipe()
        from mediapipe.tasks.python.core.base_options import BaseOptions
        from mediapipe.tasks.python.vision import (
            PoseLandmarker, PoseLandmarkerOptions, RunningMode,
        )

        options = PoseLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=RunningMode.VIDEO,
            num_poses=1,
            min_pose_detection_confidence=POSE_MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=POSE_MIN_TRACKING_CONFIDENCE,
        )
        self._mp = mp
        self._landmarker = PoseLandmarker.create_from_options(options)
        self._last_ts_ms = -1
        self.source = f"tasks:{model_path}"

    def detect(self, frame, timestamp: float) -> Optional[LandmarkSnapshot]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        # VIDEO mode rejects non-increasing timestamps
        ts_ms = max(int(timestamp * 1000), self._last_ts_ms + 1)
        self._last_ts_ms = ts_ms

        image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect_for_video(image, ts_ms)
        poses = getattr(result, "pose_landmarks", None)
        if not poses:
            return None
        return landmark_snapshot_from_points(poses[0])

    def close(self) -> None:
        self._landmarker.close()


class LegacyPoseDetector:
    """
    The older mp.solutions.pose graph; bundled with the wheel, no model file needed.
    """

    def __init__(self):
        mp = _import_mediapipe()
        solutions = getattr(mp, "solutions", None)
        if solutions is None:
            raise ModelInitFailed("mediapipe.solutions is not available in this mediapipe build")
        self._pose = solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=0,
            enable_segmentation=False,
            smooth_landmarks=False,
            min_detection_confidence=POSE_MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=POSE_MIN_TRACKING_CONFIDENCE,
        )
        self.source = "solutions.pose"

    def detect(self, frame, timestamp: float) -> Optional[LandmarkSnapshot]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        result = self._pose.process(rgb)
        if not result or not getattr(result, "pose_landmarks", None):
            return None
        return landmark_snapshot_from_points(result.pose_landmarks.landmark)

    def close(self) -> None:
        self._pose.close()


def create_pose_detector(
    model_candidates: Sequence[str] = POSE_MODEL_CANDIDATES,
    use_legacy_fallback: bool = POSE_USE_LEGACY_FALLBACK,
) -> PoseDetector:
    """
    Tries each configured source in order; raises ModelInitFailed if none loads.
    """
    last_error: Optional[BaseException] = None

    for path in dict.fromkeys(p for p in model_candidates if p and p.strip()):
        try:
            detector = MediaPipePoseDetector(path)
        except Exception as e:
            logger.debug("Pose model %s failed: %s", path, e)
            last_error = e
            continue
        logger.info("Pose model loaded: %s", detector.source)
        return detector

    if use_legacy_fallback:
        try:
            detector = LegacyPoseDetector()
        except Exception as e:
            logger.debug("Legacy pose graph failed: %s", e)
            last_error = e
        else:
            logger.info("Pose model loaded: %s", detector.source)
            return detector

    reason = str(last_error) if last_error else "no model source configured"
    raise ModelInitFailed(f"Failed to initialize pose model: {reason}") from last_error
