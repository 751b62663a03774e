# motion/worker.py
import logging
import threading
import time

import cv2

from config import CAMERA_RETRY_SEC, SHOW_CAMERA

logger = logging.getLogger(__name__)

PREVIEW_WINDOW = "Camera (press Q to close this window)"


def draw_preview(frame, landmarks, mirror: bool, lines):
    """
    Marks nose + shoulders, mirrors the view if needed, then writes the HUD text.
    """
    view = frame.copy()
    h, w = view.shape[:2]

    if landmarks is not None:
        for p, color in (
            (landmarks.nose, (0, 200, 255)),
            (landmarks.left_shoulder, (0, 255, 0)),
            (landmarks.right_shoulder, (0, 255, 0)),
        ):
            if p is not None:
                cv2.circle(view, (int(p.x * w), int(p.y * h)), 6, color, -1)
        if landmarks.left_shoulder is not None and landmarks.right_shoulder is not None:
            ls, rs = landmarks.left_shoulder, landmarks.right_shoulder
            cv2.line(view, (int(ls.x * w), int(ls.y * h)), (int(rs.x * w), int(rs.y * h)), (0, 255, 0), 2)

    if mirror:
        view = cv2.flip(view, 1)

    for i, text in enumerate(lines):
        cv2.putText(view, text, (10, 24 + 28 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)
    return view


class MotionWorker(threading.Thread):
    """
    Ticks the controller once per camera frame until stopped.
    If a tick raises, the controller is stopped so it can be started again.
    """

    def __init__(self, controller, show_camera: bool = SHOW_CAMERA):
        super().__init__(daemon=True, name="MotionWorker")
        self.controller = controller
        self.show_camera = show_camera
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()

    def run(self):
        try:
            while not self._stop_event.is_set():
                result = self.controller.tick()
                if result is None:
                    break
                if result.camera_failed:
                    time.sleep(CAMERA_RETRY_SEC)
                    continue
                if self.show_camera:
                    self._show_preview()
        except Exception:
            logger.exception("Worker exception")
            self.controller.worker_failed(self)
        finally:
            if self.show_camera:
                self._close_preview()

    def _show_preview(self):
        with self.controller.lock:
            frame = self.controller.last_frame
            landmarks = self.controller.last_landmarks
            mirror = self.controller.mirror_horizontal
            snap = self.controller.get_snapshot()
            cam_info = self.controller.cam_info
        if frame is None:
            return

        lines = [cam_info, snap.debug, f"FPS: {snap.fps}"]
        cv2.imshow(PREVIEW_WINDOW, draw_preview(frame, landmarks, mirror, lines))
        k = cv2.waitKey(1) & 0xFF
        if k in (ord("q"), ord("Q")):
            self._close_preview()
            self.show_camera = False

    def _close_preview(self):
        try:
            cv2.destroyWindow(PREVIEW_WINDOW)
        except cv2.error:
            pass
