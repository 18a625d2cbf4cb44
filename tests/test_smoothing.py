import pytest

from metrics.blinks import BlinkDetector
from metrics.smoothing import EARSmoother
from vision.eyes import Landmark
from vision.landmarks import LandmarkSmoother


def test_median_of_two_samples():
    smoother = EARSmoother({'smoothing': {'ear_window': 2}})
    assert smoother.update(0.3) == pytest.approx(0.3)
    assert smoother.update(0.1) == pytest.approx(0.2)


def test_single_frame_spike_is_rejected():
    smoother = EARSmoother({'smoothing': {'ear_window': 3}})
    smoother.update(0.3)
    smoother.update(0.3)
    assert smoother.update(0.05) == pytest.approx(0.3)


def test_oldest_sample_evicted_first():
    smoother = EARSmoother({'smoothing': {'ear_window': 3}})
    for value in (1.0, 2.0, 3.0, 4.0):
        smoother.update(value)
    assert list(smoother.buffer) == [2.0, 3.0, 4.0]
    assert len(smoother.buffer) <= smoother.window


@pytest.mark.parametrize("requested, expected", [(1, 2), (2, 2), (4, 4), (10, 5)])
def test_window_is_clamped(requested, expected):
    assert EARSmoother({'smoothing': {'ear_window': requested}}).window == expected


def test_invalid_samples_are_ignored():
    smoother = EARSmoother()
    assert smoother.update(None) is None
    smoother.update(0.3)
    assert smoother.update(float('nan')) is None
    assert list(smoother.buffer) == [0.3]
    assert smoother.last_value == pytest.approx(0.3)


def test_invalid_sample_makes_detector_skip_frame():
    smoother = EARSmoother()
    detector = BlinkDetector({'blinks': {'close_threshold': 0.2}})
    detector.update(smoother.update(0.3), 0.0)
    result = detector.update(smoother.update(None), 0.1)
    assert result['skipped']
    assert detector.current_state == detector.STATE_OPEN


def test_reset_and_update_config():
    smoother = EARSmoother({'smoothing': {'ear_window': 5}})
    for value in (0.1, 0.2, 0.3, 0.4, 0.5):
        smoother.update(value)
    smoother.update_config({'smoothing': {'ear_window': 2}})
    assert list(smoother.buffer) == [0.4, 0.5]
    smoother.reset()
    assert len(smoother.buffer) == 0
    assert smoother.last_value is None


def test_landmark_smoother_averages_per_index():
    smoother = LandmarkSmoother({'smoothing': {'position_window': 2}}, indices=[0, 1])
    smoother.smooth([Landmark(0.0, 0.0), Landmark(1.0, 1.0)])
    result = smoother.smooth([Landmark(0.2, 0.4), Landmark(1.0, 0.0)])
    assert result[0].x == pytest.approx(0.1)
    assert result[0].y == pytest.approx(0.2)
    assert result[1].y == pytest.approx(0.5)
    assert result[0].z is None


def test_landmark_smoother_history_is_bounded():
    smoother = LandmarkSmoother({'smoothing': {'position_window': 3}}, indices=[0])
    for i in range(10):
        smoother.smooth([Landmark(float(i), 0.0, 0.0)])
    assert smoother.history_length(0) == 3
    result = smoother.smooth([Landmark(10.0, 0.0, 0.0)])
    assert result[0].x == pytest.approx(9.0)
    assert result[0].z == pytest.approx(0.0)


def test_landmark_smoother_passthrough_and_missing_points():
    smoother = LandmarkSmoother(indices=[0, 5])
    assert not smoother.enabled
    result = smoother.smooth([(0.3, 0.4)])
    assert result == {0: Landmark(0.3, 0.4)}


def test_landmark_smoothers_do_not_share_state():
    first = LandmarkSmoother({'smoothing': {'position_window': 4}}, indices=[0])
    second = LandmarkSmoother({'smoothing': {'position_window': 4}}, indices=[0])
    first.smooth([Landmark(1.0, 1.0)])
    assert second.history_length(0) == 0
    first.reset()
    assert first.history_length(0) == 0
