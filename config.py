# config.py
import os

import cv2

# Camera: these indices are tried in order
CAM_INDEX_CANDIDATES = [0, 1, 2]

# Camera backends: tried in order for every index
CAP_BACKENDS = [
    ("DSHOW", cv2.CAP_DSHOW),
    ("MSMF", cv2.CAP_MSMF),
    ("DEFAULT", None),
]

CAM_W, CAM_H = 960, 540
MIRROR = True                 # mirror horizontal control (user faces the screen)

SHOW_CAMERA = True            # True: show the preview window (Q closes it, tracking keeps running)

# Pose model sources, tried in order
POSE_MODEL_CANDIDATES = [
    p for p in (
        os.environ.get("NECKSNAKE_POSE_MODEL"),
        "models/pose_landmarker_lite.task",
        os.path.expanduser("~/.cache/necksnake/pose_landmarker_lite.task"),
    ) if p
]
POSE_USE_LEGACY_FALLBACK = True
POSE_MIN_DETECTION_CONFIDENCE = 0.5
POSE_MIN_TRACKING_CONFIDENCE = 0.5

# MediaPipe pose landmark indices
NOSE = 0
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12

# Calibration
CALIBRATION_MAX_SAMPLES = 12
CALIBRATION_MIN_SAMPLES = 6
CALIBRATION_BUDGET_SEC = 1.8
MIN_SHOULDER_WIDTH = 1e-4     # numerical noise floor (normalized units)
FRAME_WAIT_SEC = 1.0 / 30
CAMERA_RETRY_SEC = 0.01       # worker back-off after a failed read

# Head motion thresholds (normalized by shoulder width)
SENSITIVITY = 1.0             # larger = easier to trigger
MIN_SENSITIVITY = 0.4
THRESHOLD_K = 0.09
SMOOTHING_ALPHA = 0.45        # weight of the newest sample
DRIFT_BLEND = 0.035
NEUTRAL_X_RATIO = 0.65
NEUTRAL_Y_RATIO = 0.75
HORIZONTAL_RATIO = 0.95
DOWN_RATIO = 1.05             # nodding down is easier than tilting up
UP_RATIO = 1.35
DOMINANCE_RATIO = 1.12
CONFIDENCE_SPAN = 2.1

# Debounce
HIGH_CONFIDENCE = 0.72        # at or above: one frame is enough
SAME_DIRECTION_GAP_SEC = 0.22
DIRECTION_CHANGE_GAP_SEC = 0.09

FPS_WINDOW_SEC = 1.0

# Snake game
GRID_COLS, GRID_ROWS = 28, 18
GRID_COLS_RANGE = (12, 60)
GRID_ROWS_RANGE = (10, 40)
GRID_RESIZE_STEP = (4, 2)     # cols, rows per [ or ] press
SPEED_CELLS_PER_SEC = 7       # cells per second
SPEED_RANGE = (4, 14)
SPEED_MS_RANGE = (50, 400)
WRAP_AROUND = False

WIN_W, WIN_H = 840, 620
HUD_H = 80
