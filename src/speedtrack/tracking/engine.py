from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Set, Tuple

from speedtrack.core.types import Detection
from speedtrack.tracking.association import (
    TrackIdAllocator,
    TrackingParams,
    advance_cycle,
)
from speedtrack.tracking.kinematics import KinematicsParams
from speedtrack.tracking.track import TrackedObject


@dataclass
class TrackingEngine:
    """Holds the live track snapshot between cycles.

    `step()` feeds the previous snapshot and new detections through
    advance_cycle() and installs the result as the new snapshot. The
    snapshot is an immutable tuple, so a published one stays valid after
    the next step replaces it.
    """

    params: TrackingParams = field(default_factory=TrackingParams)
    kinematics: KinematicsParams = field(default_factory=KinematicsParams)
    log: Callable[..., None] = lambda *a, **k: None

    def __post_init__(self) -> None:
        self._ids = TrackIdAllocator()
        self._tracks: Tuple[TrackedObject, ...] = ()
        self._seen_ids: Set[str] = set()

    @property
    def tracks(self) -> Tuple[TrackedObject, ...]:
        return self._tracks

    @property
    def distinct_tracks(self) -> int:
        """Number of track ids created since the last reset."""
        return len(self._seen_ids)

    def reset(self) -> None:
        """Drop all live tracks. Ids keep counting so none is ever reused."""
        self._tracks = ()
        self._seen_ids = set()

    def step(self, detections: Iterable[Detection], now_ms: float) -> Tuple[TrackedObject, ...]:
        self._tracks = advance_cycle(
            self._tracks,
            detections,
            now_ms,
            new_id=self._ids,
            params=self.params,
            kinematics=self.kinematics,
            log=self.log,
        )
        self._seen_ids.update(tr.track_id for tr in self._tracks)
        return self._tracks
