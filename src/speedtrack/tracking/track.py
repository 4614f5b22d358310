from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from speedtrack.core.types import Action, BBoxXYWH, Point
from speedtrack.tracking.history import PositionHistory


@dataclass(frozen=True)
class TrackedObject:
    """One tracked object as published at the end of a cycle.

    Records are replaced, never mutated: a matched track gets a fresh record
    every cycle carrying the same `track_id`.
    """

    track_id: str
    class_name: str
    history: PositionHistory
    bbox: BBoxXYWH
    score: float
    speed_kmh: int
    action: Action
    last_update_ms: float
    # Consecutive cycles without a matching detection (only > 0 when
    # unmatched tracks are retained until timeout).
    missed_cycles: int = 0

    @property
    def center(self) -> Point:
        """Last known center position."""
        p = self.history.latest
        return (p.x, p.y)

    @property
    def is_stale(self) -> bool:
        return self.missed_cycles > 0

    def age_ms(self, now_ms: float) -> float:
        return float(now_ms) - float(self.last_update_ms)

    def to_dict(self) -> Dict[str, Any]:
        x, y = self.center
        return {
            "id": self.track_id,
            "class": self.class_name,
            "bbox": [float(v) for v in self.bbox],
            "score": float(self.score),
            "center": [float(x), float(y)],
            "speed_kmh": int(self.speed_kmh),
            "action": self.action.value,
            "last_update_ms": float(self.last_update_ms),
            "missed_cycles": int(self.missed_cycles),
            "history_len": len(self.history),
        }
