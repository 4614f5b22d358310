from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


def _now_iso() -> str:
    """Return current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


def noop_log(event: str, payload: Dict[str, Any]) -> None:  # pragma: no cover
    return None


@dataclass
class JsonlLogger:
    """Append structured events to a JSONL file and stdout.

    Timer, worker and main threads share one logger; each event is written
    as a whole line under a lock.
    """
    path: Path
    echo: bool = True
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        rec = {"t": _now_iso(), "event": event, **payload}
        line = json.dumps(rec, ensure_ascii=False, default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self.echo:
                print(line, flush=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
