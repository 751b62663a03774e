# motion/controller.py
import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Optional

from config import MIRROR, SENSITIVITY, SHOW_CAMERA, FPS_WINDOW_SEC
from motion.calibration import BaselineCalibrator, sleep_one_frame
from motion.camera import open_camera
from motion.classifier import DirectionClassifier
from motion.detector import create_pose_detector
from motion.errors import CalibrationFailed, ModelInitFailed, NotStarted
from motion.types import DirectionEvent, LandmarkSnapshot, MotionSnapshot, TickResult
from motion.worker import MotionWorker

logger = logging.getLogger(__name__)

Listener = Callable[[DirectionEvent], None]


class HeadMotionController:
    """
    Turns head movement in front of the camera into up/down/left/right events.

    Typical use::

        controller = HeadMotionController()
        unsubscribe = controller.on_direction(lambda e: print(e.direction))
        controller.start()
        controller.calibrate()   # sit still, nose + shoulders in frame
        ...
        controller.stop()

    Two locks: `lock` guards controller state and the classifier and is only
    held for short updates. `_frame_lock` serializes camera reads and
    detection, so the worker and a running calibration never share the
    capture, and `stop()` never releases it mid-read. Order is always
    `_frame_lock` before `lock`. Listeners run on the ticking thread and
    must not call back into the controller.
    """

    def __init__(
        self,
        camera_factory=open_camera,
        detector_factory=create_pose_detector,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[], None] = sleep_one_frame,
        mirror_horizontal: bool = MIRROR,
        sensitivity: float = SENSITIVITY,
        threaded: bool = True,
        show_camera: bool = SHOW_CAMERA,
    ):
        self.lock = threading.RLock()
        self._frame_lock = threading.Lock()
        self._camera_factory = camera_factory
        self._detector_factory = detector_factory
        self._clock = clock
        self._wait = wait
        self._threaded = threaded
        self._show_camera = show_camera

        self._classifier = DirectionClassifier(sensitivity, mirror_horizontal)
        self._listeners: Dict[object, Listener] = {}

        self._cap = None
        self._detector = None
        self._worker: Optional[MotionWorker] = None
        self._running = False
        self.cam_info = ""

        self._frame_count = 0
        self._fps_tick_start = 0.0
        self._fps = 0

        self._snapshot = MotionSnapshot()
        self.last_frame = None
        self.last_landmarks: Optional[LandmarkSnapshot] = None

    # ---- public API ----

    @property
    def is_running(self) -> bool:
        with self.lock:
            return self._running

    @property
    def mirror_horizontal(self) -> bool:
        with self.lock:
            return self._classifier.mirror_horizontal

    def on_direction(self, listener: Listener) -> Callable[[], None]:
        token = object()
        with self.lock:
            self._listeners[token] = listener

        def unsubscribe():
            with self.lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def get_snapshot(self) -> MotionSnapshot:
        with self.lock:
            return self._snapshot

    def set_mirror_horizontal(self, enabled: bool):
        with self.lock:
            self._classifier.mirror_horizontal = bool(enabled)

    def start(self):
        with self.lock:
            if self._running:
                return

            cap, cam_info = self._camera_factory()
            try:
                detector = self._detector_factory()
            except ModelInitFailed:
                cap.release()
                raise

            self._cap = cap
            self._detector = detector
            self.cam_info = cam_info
            self._running = True
            self._frame_count = 0
            self._fps = 0
            self._fps_tick_start = self._clock()
            self._snapshot = MotionSnapshot(debug="Camera started")
            logger.info("Started (%s, pose=%s)", cam_info, getattr(detector, "source", "?"))

            if self._threaded:
                self._worker = MotionWorker(self, show_camera=self._show_camera)
                self._worker.start()

    def stop(self):
        with self.lock:
            worker, self._worker = self._worker, None
            was_running = self._running
            self._running = False

        if worker is not None:
            worker.stop()
            if worker is not threading.current_thread():
                worker.join(timeout=1.0)

        with self._frame_lock, self.lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
            if self._detector is not None:
                self._detector.close()
                self._detector = None
            self._classifier.clear_baseline()
            self.last_frame = None
            self.last_landmarks = None
            self._fps = 0
            self._snapshot = MotionSnapshot(debug="Stopped")
            if was_running:
                logger.info("Stopped")

    def calibrate(self):
        with self.lock:
            if not self._running:
                raise NotStarted("Camera not started yet.")
            self._snapshot = replace(self._snapshot, debug="Calibrating")

        calibrator = BaselineCalibrator(clock=self._clock, wait=self._wait)
        try:
            baseline = calibrator.run(self._calibration_sample)
        except CalibrationFailed:
            with self.lock:
                self._snapshot = replace(self._snapshot, debug="Calibration failed")
            raise

        with self.lock:
            if not self._running:
                raise NotStarted("Stopped during calibration.")
            self._classifier.set_baseline(baseline)
            self._snapshot = replace(self._snapshot, calibrated=True, debug="Calibrated")

    def tick(self, now: Optional[float] = None) -> Optional[TickResult]:
        """
        Reads one frame, classifies it and notifies listeners.
        Returns None when the controller is not running.
        """
        with self.lock:
            if not self._running:
                return None
            if now is None:
                now = self._clock()

        frame = self._grab_frame(now)
        if frame is None:
            return None
        ok, image, landmarks = frame

        with self.lock:
            if not self._running:
                return None
            self._count_frame(now)
            self.last_frame = image
            self.last_landmarks = landmarks

            if ok:
                result = self._classifier.update(landmarks, now)
            else:
                result = replace(
                    self._classifier.update(None, now), debug="Camera read failed", camera_failed=True,
                )

            self._snapshot = MotionSnapshot(
                tracking=result.tracking,
                calibrated=self._classifier.calibrated,
                fps=self._fps,
                debug=result.debug,
                last_direction=result.event.direction if result.event else self._snapshot.last_direction,
            )

            if result.event is not None:
                for listener in list(self._listeners.values()):
                    listener(result.event)
            return result

    def worker_failed(self, worker, debug: str = "Worker exception"):
        """
        Called by a worker that died. Stops the controller (releasing camera
        and model) so `start()` can bring it back, and keeps `debug` visible.
        A worker from an earlier start is ignored.
        """
        with self.lock:
            if self._worker is not worker:
                return
        self.stop()
        with self.lock:
            self._snapshot = replace(self._snapshot, debug=debug)

    # ---- internals ----

    def _count_frame(self, now: float):
        self._frame_count += 1
        elapsed = now - self._fps_tick_start
        if elapsed >= FPS_WINDOW_SEC:
            self._fps = int(round(self._frame_count / elapsed))
            self._frame_count = 0
            self._fps_tick_start = now

    def _grab_frame(self, now: float):
        """
        (ok, frame, landmarks) for the next camera frame, or None when stopped.
        Camera and detector run under `_frame_lock` only, not `lock`.
        """
        with self._frame_lock:
            with self.lock:
                if not self._running:
                    return None
                cap, detector = self._cap, self._detector

            ok, image = cap.read()
            if not ok or image is None:
                return False, None, None
            return True, image, detector.detect(image, now)

    def _calibration_sample(self) -> Optional[LandmarkSnapshot]:
        frame = self._grab_frame(self._clock())
        if frame is None:
            return None
        ok, _, landmarks = frame
        return landmarks if ok else None
