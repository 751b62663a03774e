# motion/errors.py


class MotionError(Exception):
    """Base class for head motion controller failures."""


class CameraUnavailable(MotionError):
    pass


class ModelInitFailed(MotionError):
    pass


class CalibrationFailed(MotionError):
    pass


class NotStarted(MotionError):
    pass
