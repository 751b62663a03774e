"""Tests for direction resolution and the per-tick debounce state machine."""

import pytest

from config import SMOOTHING_ALPHA
from motion.classifier import DirectionClassifier, resolve_direction
from motion.types import Baseline, LandmarkSnapshot, Point

from helpers import pose


def make_classifier(mirror: bool = False, sensitivity: float = 1.0) -> DirectionClassifier:
    clf = DirectionClassifier(sensitivity=sensitivity, mirror_horizontal=mirror)
    clf.set_baseline(Baseline(0.0, 0.0, 0.2))
    return clf


def feed(clf: DirectionClassifier, now: float, target_dx: float = 0.0, target_dy: float = 0.0):
    """Feeds the raw offset that moves the smoothed signal exactly onto the target."""
    a = SMOOTHING_ALPHA
    raw_x = (target_dx - clf.smoothed_dx * (1 - a)) / a
    raw_y = (target_dy - clf.smoothed_dy * (1 - a)) / a
    return clf.update(pose(raw_x, raw_y), now)


# ── resolve_direction ──


class TestResolveDirection:
    def test_right(self):
        sig = resolve_direction(1.0, 0.0, 1.0)
        assert sig.direction == "right"
        assert sig.confidence == pytest.approx(1.0 / (0.95 * 2.1))

    def test_left_clamped(self):
        sig = resolve_direction(-3.0, 0.0, 1.0)
        assert sig.direction == "left"
        assert sig.confidence == 1.0

    def test_below_horizontal_threshold(self):
        assert resolve_direction(0.9, 0.0, 1.0) is None

    def test_down_easier_than_up(self):
        down = resolve_direction(0.0, 1.1, 1.0)
        assert down.direction == "down"
        assert down.confidence == pytest.approx(1.1 / (1.05 * 2.1))
        assert resolve_direction(0.0, -1.1, 1.0) is None

    def test_up(self):
        sig = resolve_direction(0.0, -1.4, 1.0)
        assert sig.direction == "up"
        assert sig.confidence == pytest.approx(1.4 / (1.35 * 2.1))

    def test_diagonal_is_ambiguous(self):
        assert resolve_direction(1.0, 0.95, 1.0) is None
        assert resolve_direction(2.0, -2.0, 1.0) is None

    def test_horizontal_needs_dominance(self):
        # |dx| = 1.1 * |dy| is short of the 1.12 ratio, and dy is too small for down
        assert resolve_direction(1.1, 1.0, 1.0) is None
        assert resolve_direction(1.12, 1.0, 1.0).direction == "right"


# ── tracking and calibration state ──


class TestTrackingState:
    def test_uncalibrated(self):
        clf = DirectionClassifier(mirror_horizontal=False)
        res = clf.update(pose(0.05, 0.0), 0.0)
        assert res.tracking is True
        assert res.debug == "Ready to calibrate"
        assert res.event is None

    def test_no_person(self):
        res = make_classifier().update(None, 0.0)
        assert res.tracking is False
        assert res.debug == "Tracking lost"

    def test_missing_landmark(self):
        snap = LandmarkSnapshot(nose=Point(0.5, 0.4), left_shoulder=Point(0.4, 0.5))
        res = make_classifier().update(snap, 0.0)
        assert res.tracking is False
        assert res.debug == "Need nose + shoulders in frame"

    def test_loss_keeps_baseline(self):
        clf = make_classifier()
        clf.update(None, 0.0)
        assert clf.baseline == Baseline(0.0, 0.0, 0.2)

    def test_threshold_scales_with_shoulder_width(self):
        clf = make_classifier()
        assert clf.threshold_for(0.2) == pytest.approx(0.018)
        assert clf.threshold_for(0.4) == pytest.approx(0.027)

    def test_low_sensitivity_is_floored(self):
        clf = make_classifier(sensitivity=0.1)
        assert clf.threshold_for(0.2) == pytest.approx(0.09 / 0.4 * 0.2)


# ── debounce ──


class TestDebounce:
    def test_low_confidence_needs_two_ticks(self):
        clf = make_classifier()
        first = feed(clf, 0.000, target_dx=0.02)
        assert first.event is None
        assert clf.candidate_direction == "right"
        assert clf.candidate_frame_count == 1

        second = feed(clf, 0.033, target_dx=0.02)
        assert second.event is not None
        assert second.event.direction == "right"
        assert second.event.confidence == pytest.approx(0.02 / (2.1 * 0.95 * 0.018), rel=1e-6)
        assert second.event.timestamp == 0.033
        assert second.debug == "Direction: right"
        assert clf.candidate_direction is None

    def test_high_confidence_fires_immediately(self):
        clf = make_classifier()
        res = feed(clf, 0.0, target_dx=-0.03)
        assert res.event is not None
        assert res.event.direction == "left"
        assert res.event.confidence >= 0.72

    def test_repeat_direction_never_fires_twice(self):
        clf = make_classifier()
        events = []
        for i in range(30):
            res = feed(clf, i * 0.033, target_dx=0.03)
            if res.event:
                events.append(res.event)
        assert [e.direction for e in events] == ["right"]

    def test_direction_change_after_90ms(self):
        clf = make_classifier()
        assert feed(clf, 0.0, target_dx=0.03).event.direction == "right"

        assert feed(clf, 0.05, target_dx=-0.03).event is None
        res = feed(clf, 0.09, target_dx=-0.03)
        assert res.event is not None
        assert res.event.direction == "left"

    def test_vertical_after_horizontal(self):
        clf = make_classifier()
        assert feed(clf, 0.0, target_dx=0.03).event.direction == "right"
        res = feed(clf, 0.2, target_dy=0.04)
        assert res.event.direction == "down"

    def test_micro_movement_clears_candidate(self):
        clf = make_classifier()
        feed(clf, 0.0, target_dx=0.02)
        res = feed(clf, 0.033, target_dx=0.005)
        assert res.event is None
        assert res.debug == "Micro movement ignored"
        assert clf.candidate_direction is None
        assert feed(clf, 0.066, target_dx=0.02).event is None

    def test_dropped_frame_resets_candidate(self):
        clf = make_classifier()
        feed(clf, 0.000, target_dx=0.02)
        clf.update(None, 0.033)
        assert clf.candidate_direction is None
        assert clf.smoothed_dx == 0.0

        res = feed(clf, 0.066, target_dx=0.02)
        assert res.event is None
        assert clf.candidate_frame_count == 1
        assert feed(clf, 0.099, target_dx=0.02).event.direction == "right"

    def test_dropped_frame_resets_repeat_suppression(self):
        clf = make_classifier()
        assert feed(clf, 0.00, target_dx=0.03).event.direction == "right"
        clf.update(None, 0.03)
        assert clf.last_emitted_direction is None
        res = feed(clf, 0.06, target_dx=0.03)
        assert res.event is not None
        assert res.event.direction == "right"


# ── normalization ──


class TestNormalization:
    def test_mirror_flips_horizontal(self):
        clf = make_classifier(mirror=True)
        res = clf.update(pose(0.1, 0.0), 0.0)
        assert clf.smoothed_dx == pytest.approx(-0.045)
        assert res.event.direction == "left"
        assert clf.update(pose(-0.2, 0.0), 0.2).event.direction == "right"

    def test_drift_adapts_near_neutral(self):
        clf = make_classifier()
        clf.update(pose(0.005, 0.004), 0.0)
        assert clf.baseline.nose_offset_x == pytest.approx(0.035 * 0.005)
        assert clf.baseline.nose_offset_y == pytest.approx(0.035 * 0.004)
        assert clf.baseline.shoulder_width == pytest.approx(0.2)

    def test_no_drift_while_moving(self):
        clf = make_classifier()
        feed(clf, 0.0, target_dx=0.03)
        assert clf.baseline.nose_offset_x == 0.0

    def test_end_to_end_right(self):
        clf = make_classifier()
        events = []
        for t in (0.0, 0.033):
            res = clf.update(pose(0.05, 0.0), t)
            if res.event:
                events.append((t, res.event))

        assert len(events) == 1
        t, event = events[0]
        assert t == 0.033
        assert event.direction == "right"
        smoothed = 0.05 * 0.45 * 0.55 + 0.05 * 0.45
        assert event.confidence == pytest.approx(smoothed / (2.1 * 0.95 * 0.018), rel=1e-6)

    def test_set_baseline_resets_state(self):
        clf = make_classifier()
        feed(clf, 0.0, target_dx=0.03)
        clf.set_baseline(Baseline(0.01, 0.0, 0.2))
        assert clf.smoothed_dx == 0.0
        assert clf.last_emitted_direction is None
        assert clf.candidate_direction is None
