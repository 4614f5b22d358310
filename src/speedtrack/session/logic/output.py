from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Sequence

from speedtrack.core.io import dump_json
from speedtrack.session.logic.hist import action_hist, class_hist
from speedtrack.tracking.track import TrackedObject


def now_iso() -> str:
    """Return current local time as an ISO string (seconds precision)."""
    return datetime.now().isoformat(timespec="seconds")


def build_cycle_record(*, cycle: int, t_ms: float, tracks: Sequence[TrackedObject]) -> Dict[str, Any]:
    """One line of tracks.jsonl."""
    return {
        "cycle": int(cycle),
        "t_ms": float(t_ms),
        "tracks": [tr.to_dict() for tr in tracks],
    }


def build_summary(
    *,
    run_id: str,
    status: str,
    counters: Dict[str, int],
    final_tracks: Sequence[TrackedObject],
    meta: Dict[str, Any],
) -> Dict[str, Any]:
    """Build the session.json summary dictionary."""
    return {
        "run_id": run_id,
        "status": status,
        "finished_at": now_iso(),
        "counters": {str(k): int(v) for k, v in counters.items()},
        "final": {
            "tracks": len(final_tracks),
            "actions": action_hist(final_tracks),
            "classes": class_hist(final_tracks),
        },
        "meta": meta,
    }


def write_summary_json(path: Path, obj: Dict[str, Any]) -> None:
    """Write session summary as JSON to disk."""
    dump_json(path, obj)
