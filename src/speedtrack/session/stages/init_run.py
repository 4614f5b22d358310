from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from speedtrack.core.io import ensure_dir
from speedtrack.core.pipeline.base import StageContext
from speedtrack.core.pipeline.log import JsonlLogger
from speedtrack.core.schema import SessionConfig


@dataclass
class InitRun:
    """Prepare the run dir and the JSONL logger."""

    name: str = "init_run"
    echo: bool = True

    def run(self, ctx: StageContext) -> None:
        cfg: SessionConfig = ctx.cfg

        run_id = cfg.run_id or cfg.timestamp
        run_root = ensure_dir(Path(cfg.export.out_dir) / run_id)

        log = JsonlLogger(run_root / "session.log.jsonl", echo=self.echo)
        ctx.assets["log"] = log

        ctx.state.update(
            {
                "run_id": run_id,
                "run_root": run_root,
                "debug": bool(cfg.debug),
            }
        )

        log(
            "run_start",
            {
                "run_id": run_id,
                "source": cfg.source.type,
                "detector": cfg.detector.backend,
                "matching": cfg.tracking.matching,
                "unmatched": cfg.tracking.unmatched,
            },
        )
