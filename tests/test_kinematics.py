from speedtrack.core.types import Action
from speedtrack.tracking.kinematics import (
    KinematicsParams,
    calculate_speed,
    determine_action,
    instantaneous_speeds,
    movement_pattern,
)

from _factories import samples


def test_speed_needs_two_samples():
    assert calculate_speed([]) == 0
    assert calculate_speed(samples((10, 10, 0))) == 0


def test_speed_horizontal_100px_per_second():
    # 100 px * 0.015 m/px / 1 s * 3.6 = 5.4 km/h
    assert calculate_speed(samples((0, 0, 0), (100, 0, 1000))) == 5


def test_outlier_pair_excluded():
    # Second pair is 1000 px in 100 ms -> 540 km/h, above the 30 km/h cap.
    pts = samples((0, 0, 0), (100, 0, 1000), (1100, 0, 1100))
    assert len(instantaneous_speeds(pts)) == 1
    assert calculate_speed(pts) == 5


def test_noise_and_zero_time_give_no_signal():
    assert calculate_speed(samples((0, 0, 0), (2, 0, 1000))) == 0
    assert calculate_speed(samples((0, 0, 500), (80, 0, 500))) == 0


def test_smoothing_uses_last_three_speeds():
    # Pair speeds: 5.4, 10.8, 10.8, 10.8 km/h.
    pts = samples((0, 0, 0), (100, 0, 1000), (300, 0, 2000), (500, 0, 3000), (700, 0, 4000))
    assert calculate_speed(pts) == 11
    assert calculate_speed(pts, KinematicsParams(speed_smoothing_window=4)) == 9


def test_calibration_is_tunable():
    pts = samples((0, 0, 0), (100, 0, 1000))
    assert calculate_speed(pts, KinematicsParams(pixel_to_meter=0.03)) == 11


def test_action_stationary_with_one_sample():
    assert determine_action(samples((0, 0, 0)), 0) == Action.STATIONARY


def test_action_sitting_vs_standing():
    assert determine_action(samples((0, 0, 0), (0, 2, 33)), 0.5) == Action.SITTING
    assert determine_action(samples((0, 0, 0), (0, 10, 33)), 0.5) == Action.STANDING


def test_action_slow_band_uses_movement_direction():
    vertical = samples((0, 0, 0), (1, 20, 500))
    horizontal = samples((0, 0, 0), (20, 1, 500))
    assert determine_action(vertical, 2) == Action.STANDING
    assert determine_action(horizontal, 2) == Action.WALKING_SLOWLY


def test_action_speed_bands():
    pts = samples((0, 0, 0), (30, 0, 100))
    assert determine_action(pts, 5) == Action.WALKING
    assert determine_action(pts, 10) == Action.WALKING_FAST
    assert determine_action(pts, 20) == Action.RUNNING


def test_movement_pattern_only_recent_samples():
    pts = samples((0, 0, 0), (0, 100, 33), (0, 100, 66), (1, 100, 99))
    vertical, horizontal = movement_pattern(pts, 3)
    assert vertical == 0
    assert horizontal == 1
    assert determine_action(pts, 0) == Action.SITTING
