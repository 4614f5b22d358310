from __future__ import annotations

from pathlib import Path

from speedtrack.core.pipeline.base import PipelineRunner, StageContext
from speedtrack.core.pipeline.log import noop_log
from speedtrack.core.schema import SessionConfig

from speedtrack.session.stages.init_run import InitRun
from speedtrack.session.stages.build_components import BuildComponents
from speedtrack.session.stages.run_session import RunSession
from speedtrack.session.stages.finalize_run import FinalizeRun


class SessionPipeline:

    def __init__(self, *, echo: bool = True):
        self.echo = bool(echo)

    def run(self, cfg: SessionConfig) -> Path:
        ctx = StageContext(cfg=cfg, state={}, assets={"log": noop_log})

        stages = [
            InitRun(echo=self.echo),
            BuildComponents(),
            RunSession(),
            FinalizeRun(),
        ]
        PipelineRunner(stages=stages).run(ctx)
        return Path(ctx.state["run_root"])
