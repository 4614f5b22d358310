from __future__ import annotations

import errno
import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, TextIO, Tuple


def dump_json(path: str | Path, obj: Dict[str, Any], *, indent: int = 2) -> Path:
    """Write JSON atomically (temp file + replace); retries on stale NFS handles."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(f".{p.name}.{os.getpid()}.tmp")
    for attempt in range(3):
        try:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(obj, f, ensure_ascii=False, indent=indent, default=str)
            os.replace(tmp, p)
            return p
        except OSError as exc:
            if exc.errno != errno.ESTALE or attempt == 2:
                raise
            time.sleep(0.2)
    return p


def iter_jsonl(path: str | Path) -> Iterator[Tuple[int, Dict[str, Any]]]:
    """Yield (line_number, record) for every non-blank line of a JSONL file."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                rec = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{p}:{line_no}: invalid JSON ({exc.msg})") from exc
            if not isinstance(rec, dict):
                raise ValueError(f"{p}:{line_no}: expected a JSON object, got {type(rec).__name__}")
            yield line_no, rec


class JsonlWriter:
    """Append-only JSONL sink; one record per line, flushed per write."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._f: Optional[TextIO] = self.path.open("w", encoding="utf-8")
        self.records = 0

    def write(self, rec: Dict[str, Any]) -> None:
        if self._f is None:
            raise ValueError(f"writer for {self.path} is closed")
        self._f.write(json.dumps(rec, ensure_ascii=False) + "\n")
        self._f.flush()
        self.records += 1

    def close(self) -> None:
        if self._f is not None:
            self._f.close()
            self._f = None
