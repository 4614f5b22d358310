from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from speedtrack.core.pipeline.base import StageContext
from speedtrack.core.schema import SessionConfig
from speedtrack.session.logic.output import build_summary, write_summary_json


@dataclass
class FinalizeRun:
    """Stage that writes the session summary."""
    name: str = "finalize_run"

    def run(self, ctx: StageContext) -> None:
        cfg: SessionConfig = ctx.cfg
        run_id: str = ctx.state["run_id"]
        run_root: Path = ctx.state["run_root"]
        log = ctx.assets.get("log")

        meta: Dict[str, Any] = {
            "config": cfg.model_dump(mode="json"),
            "outputs": {
                "log": str(run_root / "session.log.jsonl"),
                "tracks": str(run_root / "tracks.jsonl") if cfg.export.save_tracks else None,
                "video": str(run_root / "session.mp4")
                if (cfg.export.save_video and cfg.source.type != "replay")
                else None,
            },
        }
        summary = build_summary(
            run_id=run_id,
            status="completed",
            counters=ctx.state.get("counters", {}),
            final_tracks=ctx.state.get("final_tracks", ()),
            meta=meta,
        )
        summary_path = run_root / "session.json"
        write_summary_json(summary_path, summary)
        ctx.state["summary_path"] = summary_path

        log("run_done", {"run_id": run_id, "run_root": str(run_root)})
