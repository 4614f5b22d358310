from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable

from speedtrack.tracking.track import TrackedObject


def action_hist(tracks: Iterable[TrackedObject]) -> Dict[str, int]:
    c = Counter([tr.action.value for tr in tracks])
    return {str(k): int(v) for k, v in c.items()}


def class_hist(tracks: Iterable[TrackedObject]) -> Dict[str, int]:
    c = Counter([str(tr.class_name) for tr in tracks])
    return {str(k): int(v) for k, v in c.items()}
