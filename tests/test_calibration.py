"""Tests for baseline sampling and the calibration loop."""

import pytest

from motion.calibration import BaselineCalibrator, average_baseline, baseline_sample
from motion.errors import CalibrationFailed
from motion.types import Baseline, LandmarkSnapshot, Point

from helpers import FakeClock, pose


def make_calibrator(clock: FakeClock) -> BaselineCalibrator:
    return BaselineCalibrator(clock=clock, wait=lambda: clock.advance(1 / 30))


def sampler(snapshots, default=None):
    queue = list(snapshots)

    def next_sample():
        return queue.pop(0) if queue else default

    return next_sample


class TestBaselineSample:
    def test_offsets_from_shoulder_center(self):
        sample = baseline_sample(pose(0.01, -0.12, half_width=0.1))
        assert sample.nose_offset_x == pytest.approx(0.01)
        assert sample.nose_offset_y == pytest.approx(-0.12)
        assert sample.shoulder_width == pytest.approx(0.2)

    def test_missing_landmarks(self):
        assert baseline_sample(None) is None
        assert baseline_sample(LandmarkSnapshot(nose=Point(0.5, 0.4))) is None

    def test_collapsed_shoulders_rejected(self):
        assert baseline_sample(pose(0.0, -0.1, half_width=0.00001)) is None

    def test_average(self):
        samples = [Baseline(0.0, -0.1, 0.2), Baseline(0.02, -0.2, 0.3), Baseline(0.01, -0.3, 0.1)]
        avg = average_baseline(samples)
        assert avg.nose_offset_x == pytest.approx(0.01)
        assert avg.nose_offset_y == pytest.approx(-0.2)
        assert avg.shoulder_width == pytest.approx(0.2)


class TestCalibrator:
    def test_mean_of_valid_samples(self):
        clock = FakeClock()
        snaps = [pose(0.001 * i, -0.1 - 0.002 * i, half_width=0.1 + 0.001 * i) for i in range(8)]
        baseline = make_calibrator(clock).run(sampler(snaps))

        assert baseline.nose_offset_x == pytest.approx(sum(0.001 * i for i in range(8)) / 8)
        assert baseline.nose_offset_y == pytest.approx(sum(-0.1 - 0.002 * i for i in range(8)) / 8)
        assert baseline.shoulder_width == pytest.approx(sum(0.2 + 0.002 * i for i in range(8)) / 8)

    def test_stops_at_twelve_samples(self):
        clock = FakeClock()
        snaps = [pose(0.0, -0.1)] * 12 + [pose(0.5, 0.5)] * 20
        calls = []

        def next_sample():
            calls.append(1)
            return snaps.pop(0)

        baseline = make_calibrator(clock).run(next_sample)
        assert len(calls) == 12
        assert baseline.nose_offset_x == pytest.approx(0.0)
        assert baseline.nose_offset_y == pytest.approx(-0.1)

    def test_invalid_samples_are_skipped(self):
        clock = FakeClock()
        snaps = [None, pose(0.0, -0.1, half_width=0.0), pose(0.02, -0.1)] * 6
        baseline = make_calibrator(clock).run(sampler(snaps))
        assert baseline.nose_offset_x == pytest.approx(0.02)

    def test_five_samples_fail(self):
        clock = FakeClock()
        with pytest.raises(CalibrationFailed):
            make_calibrator(clock).run(sampler([pose(0.0, -0.1)] * 5))
        assert clock.t >= 1.8

    def test_occlusion_fails_within_budget(self):
        clock = FakeClock()
        polls = []

        def next_sample():
            polls.append(clock())
            return None

        with pytest.raises(CalibrationFailed):
            make_calibrator(clock).run(next_sample)
        assert polls
        assert max(polls) < 1.8
        assert clock.t == pytest.approx(1.8, abs=1 / 30)

    def test_six_samples_succeed(self):
        clock = FakeClock()
        baseline = make_calibrator(clock).run(sampler([pose(0.0, -0.1)] * 6))
        assert baseline.shoulder_width == pytest.approx(0.2)
