from __future__ import annotations

"""Per-cycle association of detections with the previous track set."""

import itertools
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Literal, Optional, Sequence, Set, Tuple

from speedtrack.core.types import Detection, Point, PositionSample
from speedtrack.tracking.history import DEFAULT_CAPACITY, PositionHistory
from speedtrack.tracking.kinematics import (
    DEFAULT_PARAMS,
    KinematicsParams,
    calculate_speed,
    determine_action,
)
from speedtrack.tracking.track import TrackedObject

MatchingPolicy = Literal["first", "exclusive"]
UnmatchedPolicy = Literal["drop", "retain"]

LogFn = Callable[[str, dict], None]


def _noop_log(event: str, payload: dict) -> None:
    return None


@dataclass(frozen=True)
class TrackingParams:
    position_history: int = DEFAULT_CAPACITY
    object_timeout_ms: float = 1000.0
    gate_dx_px: float = 50.0
    gate_dy_px: float = 50.0
    # "first": each detection looks only at the first track inside its gate;
    # if an earlier detection already took it, a new track is started.
    # "exclusive": claimed tracks are skipped and the search goes on.
    matching: MatchingPolicy = "first"
    # "drop": unmatched previous tracks vanish at once. "retain": they are
    # carried forward, frozen, until the timeout removes them.
    unmatched: UnmatchedPolicy = "drop"


DEFAULT_TRACKING = TrackingParams()


class TrackIdAllocator:
    """Hands out ids of the form "<class>-<n>"; n never repeats."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(int(start))
        self.issued = 0

    def __call__(self, class_name: str) -> str:
        self.issued += 1
        return f"{class_name}-{next(self._counter)}"


def within_gate(a: Point, b: Point, dx_px: float, dy_px: float) -> bool:
    """Rectangular gate: both axis deltas strictly below their limits."""
    return abs(a[0] - b[0]) < dx_px and abs(a[1] - b[1]) < dy_px


def find_match(
    detection: Detection,
    candidates: Sequence[TrackedObject],
    params: TrackingParams = DEFAULT_TRACKING,
    *,
    claimed: Optional[Set[str]] = None,
) -> Optional[TrackedObject]:
    """Return the first candidate of the same class inside the gate."""
    center = detection.center
    for tr in candidates:
        if claimed is not None and tr.track_id in claimed:
            continue
        if tr.class_name != detection.class_name:
            continue
        if within_gate(center, tr.center, params.gate_dx_px, params.gate_dy_px):
            return tr
    return None


def _carry_forward(tr: TrackedObject) -> TrackedObject:
    return replace(tr, missed_cycles=tr.missed_cycles + 1)


def advance_cycle(
    previous: Sequence[TrackedObject],
    detections: Iterable[Detection],
    now_ms: float,
    *,
    new_id: Callable[[str], str],
    params: TrackingParams = DEFAULT_TRACKING,
    kinematics: KinematicsParams = DEFAULT_PARAMS,
    log: LogFn = _noop_log,
) -> Tuple[TrackedObject, ...]:
    """Produce the next live track set from the previous one and new detections.

    Each well-formed detection yields exactly one record, in detector order.
    Under the "drop" policy previous tracks that nothing matched are not
    carried over; under "retain" they follow the emitted records. The
    timeout filter runs last over everything.
    """
    previous = tuple(previous)
    claimed: Set[str] = set()
    taken: Set[str] = {tr.track_id for tr in previous}
    out: List[TrackedObject] = []

    for idx, det in enumerate(detections):
        if not det.is_well_formed():
            log("detection_skipped", {"index": idx, "class": str(det.class_name), "bbox": repr(det.bbox)})
            continue

        cx, cy = det.center
        sample = PositionSample(x=cx, y=cy, timestamp_ms=float(now_ms))

        match = find_match(
            det,
            previous,
            params,
            claimed=claimed if params.matching == "exclusive" else None,
        )
        if match is not None and match.track_id in claimed:
            match = None

        if match is not None:
            claimed.add(match.track_id)
            track_id = match.track_id
            history = match.history.appended(sample)
        else:
            track_id = new_id(det.class_name)
            while track_id in taken:
                track_id = new_id(det.class_name)
            taken.add(track_id)
            history = PositionHistory.start(sample, capacity=params.position_history)

        speed = calculate_speed(history.samples, kinematics)
        action = determine_action(history.samples, speed, kinematics)

        out.append(
            TrackedObject(
                track_id=track_id,
                class_name=det.class_name,
                history=history,
                bbox=tuple(float(v) for v in det.bbox),
                score=float(det.score),
                speed_kmh=speed,
                action=action,
                last_update_ms=float(now_ms),
            )
        )

    if params.unmatched == "retain":
        for tr in previous:
            if tr.track_id not in claimed:
                out.append(_carry_forward(tr))

    return tuple(tr for tr in out if tr.age_ms(now_ms) < params.object_timeout_ms)
