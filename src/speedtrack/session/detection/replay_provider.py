from __future__ import annotations

"""Recorded detection streams.

File format (JSONL, one cycle per line):

    {"t": 0, "detections": [{"bbox": [x, y, w, h], "class": "person", "score": 0.91}]}
    {"t": 33, "detections": []}
    {"t": 66, "error": "detector timeout"}

`t` is the capture time in milliseconds and must not go backwards. Records
with a non-numeric, negative or decreasing `t` are skipped and logged as
"replay_record_skipped". A record with "error" replays a detector failure for
that cycle.
"""

import math
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from speedtrack.core.io import iter_jsonl
from speedtrack.core.types import Detection
from speedtrack.session.detection.providers import DetectionProvider, DetectorError, keep_classes


def detection_from_dict(raw: Any) -> Optional[Detection]:
    """Build a Detection from a recorded entry; None if it is malformed."""
    if not isinstance(raw, Mapping):
        return None
    bbox = raw.get("bbox")
    cls = raw.get("class", raw.get("class_name"))
    score = raw.get("score", 0.0)
    if not isinstance(bbox, (list, tuple)) or len(bbox) != 4 or cls is None:
        return None
    try:
        det = Detection(
            bbox=tuple(float(v) for v in bbox),
            class_name=str(cls),
            score=float(score),
        )
    except (TypeError, ValueError):
        return None
    return det if det.is_well_formed() else None


def detection_to_dict(det: Detection) -> Dict[str, Any]:
    return {"bbox": [float(v) for v in det.bbox], "class": det.class_name, "score": float(det.score)}


class ReplaySource:
    """Yields (t_ms, record) pairs from a detections JSONL file in file order."""

    def __init__(self, path: str | Path, *, log=lambda *a, **k: None):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Replay file not found: {self.path}")
        self.log = log
        self.skipped = 0

    def __iter__(self) -> Iterator[Tuple[float, Dict[str, Any]]]:
        last_t: Optional[float] = None
        for line_no, rec in iter_jsonl(self.path):
            if "t" not in rec:
                raise ValueError(f"{self.path}:{line_no}: record has no 't' timestamp")
            t = _timestamp(rec["t"])
            if t is None:
                reason = f"bad timestamp {rec['t']!r}"
            elif last_t is not None and t < last_t:
                reason = f"timestamp {t} < previous {last_t}"
            else:
                last_t = t
                yield t, rec
                continue
            self.skipped += 1
            self.log("replay_record_skipped", {"where": f"{self.path}:{line_no}", "reason": reason})


def _timestamp(raw: Any) -> Optional[float]:
    if isinstance(raw, bool):
        return None
    try:
        t = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(t) or t < 0:
        return None
    return t


class ReplayDetector(DetectionProvider):
    """Returns the detections stored in a replay record (the "frame")."""

    def __init__(self, *, classes: Sequence[str] = (), log=lambda *a, **k: None):
        self._classes = list(classes)
        self.log = log

    def detect(self, frame: Any) -> List[Detection]:
        if not isinstance(frame, Mapping):
            raise DetectorError(f"replay frame must be a mapping, got {type(frame).__name__}")
        if frame.get("error"):
            raise DetectorError(str(frame["error"]))

        out: List[Detection] = []
        for idx, raw in enumerate(frame.get("detections") or []):
            det = detection_from_dict(raw)
            if det is None:
                self.log("detection_skipped", {"t_ms": frame.get("t"), "index": idx, "raw": repr(raw)})
                continue
            out.append(det)
        return keep_classes(out, self._classes)
