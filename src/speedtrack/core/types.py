from __future__ import annotations

"""Shared type aliases and small data containers."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

# Bounding box in (x, y, width, height) pixel coordinates, origin top-left.
BBoxXYWH = Tuple[float, float, float, float]

Point = Tuple[float, float]


class Action(str, Enum):
    """Coarse motion state derived from speed and recent displacement."""
    STATIONARY = "stationary"
    SITTING = "sitting"
    STANDING = "standing"
    WALKING_SLOWLY = "walking slowly"
    WALKING = "walking"
    WALKING_FAST = "walking fast"
    RUNNING = "running"


def bbox_center(bbox: BBoxXYWH) -> Point:
    """Return the center point of an (x, y, w, h) box."""
    x, y, w, h = bbox
    return (float(x) + float(w) / 2.0, float(y) + float(h) / 2.0)


@dataclass(frozen=True)
class Detection:
    """Raw detector output for a single object."""
    bbox: BBoxXYWH
    class_name: str
    score: float

    @property
    def center(self) -> Point:
        return bbox_center(self.bbox)

    def is_well_formed(self) -> bool:
        """True if the box has four finite values and a non-negative size."""
        try:
            if len(self.bbox) != 4:
                return False
            values = [float(v) for v in self.bbox]
        except (TypeError, ValueError):
            return False
        if not all(math.isfinite(v) for v in values):
            return False
        return values[2] >= 0.0 and values[3] >= 0.0


@dataclass(frozen=True)
class PositionSample:
    """Center of a matched bounding box at capture time (milliseconds)."""
    x: float
    y: float
    timestamp_ms: float
