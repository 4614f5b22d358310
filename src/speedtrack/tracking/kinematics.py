from __future__ import annotations

"""Speed and motion-state estimation from a track's position history.

The thresholds below are empirical calibration for a generic webcam framing
(roughly 640x480, subject a few metres away). They are not physical
constants; re-tune them through the `kinematics` config section for a
different camera or scale.
"""

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from speedtrack.core.types import Action, PositionSample

MS_TO_KMH = 3.6


@dataclass(frozen=True)
class ActionThresholds:
    """Speed bands (km/h) used by determine_action, checked in ascending order."""

    still_kmh: float = 1.0
    slow_kmh: float = 3.0
    walking_kmh: float = 8.0
    fast_walking_kmh: float = 15.0

    # Number of recent samples used for the displacement pattern.
    pattern_window: int = 3
    # Sitting requires vertical movement below min_movement_px * this factor.
    sitting_vertical_factor: float = 2.0


@dataclass(frozen=True)
class KinematicsParams:
    pixel_to_meter: float = 0.015
    min_movement_px: float = 2.0
    max_speed_kmh: float = 30.0
    speed_smoothing_window: int = 3
    actions: ActionThresholds = field(default_factory=ActionThresholds)


DEFAULT_PARAMS = KinematicsParams()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def instantaneous_speeds(
    samples: Sequence[PositionSample],
    params: KinematicsParams = DEFAULT_PARAMS,
) -> List[float]:
    """Per-pair speeds in km/h that survive the noise and outlier filters."""
    speeds: List[float] = []
    for prev, curr in zip(samples, samples[1:]):
        distance = math.hypot(curr.x - prev.x, curr.y - prev.y)
        elapsed_s = (curr.timestamp_ms - prev.timestamp_ms) / 1000.0

        if distance <= params.min_movement_px or elapsed_s <= 0:
            continue

        speed = distance * params.pixel_to_meter / elapsed_s * MS_TO_KMH
        if speed >= params.max_speed_kmh:
            continue
        speeds.append(speed)
    return speeds


def calculate_speed(
    samples: Sequence[PositionSample],
    params: KinematicsParams = DEFAULT_PARAMS,
) -> int:
    """Smoothed speed in whole km/h (0 when there is no usable motion)."""
    samples = list(samples)
    if len(samples) < 2:
        return 0

    speeds = instantaneous_speeds(samples, params)
    if not speeds:
        return 0

    window = max(1, int(params.speed_smoothing_window))
    recent = speeds[-window:]
    return _round_half_up(sum(recent) / len(recent))


def movement_pattern(samples: Sequence[PositionSample], window: int = 3) -> Tuple[float, float]:
    """Sum of absolute (vertical, horizontal) deltas over the last `window` samples."""
    recent = list(samples)[-window:] if window > 0 else []
    vertical = 0.0
    horizontal = 0.0
    for prev, curr in zip(recent, recent[1:]):
        vertical += abs(curr.y - prev.y)
        horizontal += abs(curr.x - prev.x)
    return vertical, horizontal


def determine_action(
    samples: Sequence[PositionSample],
    speed: float,
    params: KinematicsParams = DEFAULT_PARAMS,
) -> Action:
    """Map recent motion and speed to an Action; the first matching band wins."""
    samples = list(samples)
    if len(samples) < 2:
        return Action.STATIONARY

    th = params.actions
    vertical, horizontal = movement_pattern(samples, th.pattern_window)

    if speed < th.still_kmh:
        if vertical < params.min_movement_px * th.sitting_vertical_factor:
            return Action.SITTING
        return Action.STANDING

    if speed < th.slow_kmh:
        return Action.STANDING if vertical > horizontal else Action.WALKING_SLOWLY

    if speed < th.walking_kmh:
        return Action.WALKING
    if speed < th.fast_walking_kmh:
        return Action.WALKING_FAST
    return Action.RUNNING
