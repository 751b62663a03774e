# motion/camera.py
import logging
from typing import Optional, Sequence, Tuple

import cv2

from config import CAM_INDEX_CANDIDATES, CAP_BACKENDS, CAM_W, CAM_H
from motion.errors import CameraUnavailable

logger = logging.getLogger(__name__)


def try_open_camera(
    index_candidates: Sequence[int] = CAM_INDEX_CANDIDATES,
    backends=CAP_BACKENDS,
    width: int = CAM_W,
    height: int = CAM_H,
) -> Tuple[Optional[cv2.VideoCapture], str]:
    """
    Tries every index with every backend; returns the capture and a description.
    """
    for idx in index_candidates:
        for name, backend in backends:
            if backend is None:
                cap = cv2.VideoCapture(idx)
            else:
                cap = cv2.VideoCapture(idx, backend)

            if cap is not None and cap.isOpened():
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
                info = f"CAM idx={idx}, backend={name}"
                return cap, info

            if cap is not None:
                cap.release()

    return None, "CAMERA_OPEN_FAILED"


def open_camera(index_candidates: Sequence[int] = CAM_INDEX_CANDIDATES) -> Tuple[cv2.VideoCapture, str]:
    cap, info = try_open_camera(index_candidates)
    if cap is None:
        logger.warning("Camera open failed for indices %s", list(index_candidates))
        raise CameraUnavailable(
            "Cannot open camera. Close other apps using it or try another index."
        )
    logger.info("Opened: %s", info)
    return cap, info
