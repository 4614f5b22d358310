from __future__ import annotations

from dataclasses import dataclass

try:  # pragma: no cover
    import cv2  # type: ignore
except Exception:  # pragma: no cover
    cv2 = None

from speedtrack.core.pipeline.base import StageContext
from speedtrack.core.schema import SessionConfig
from speedtrack.runtime.cycle import CycleOutcome, CycleRunner
from speedtrack.runtime.loop import DetectionLoop
from speedtrack.session.detection.replay_provider import ReplaySource
from speedtrack.session.logic.recorder import SessionRecorder


@dataclass
class RunSession:
    """Stage that drives detection cycles until the source ends or the user stops.

    Replay sources run back to back at their recorded timestamps; live sources
    go through the fixed-interval DetectionLoop.
    """

    name: str = "run_session"

    def run(self, ctx: StageContext) -> None:
        cfg: SessionConfig = ctx.cfg
        log = ctx.assets.get("log")
        source = ctx.assets["source"]
        runner: CycleRunner = ctx.assets["runner"]
        recorder: SessionRecorder = ctx.assets["recorder"]

        if isinstance(source, ReplaySource):
            counters = self._replay(source, runner, max_cycles=int(cfg.loop.max_cycles))
        else:
            counters = self._live(cfg, source, runner, recorder, log)

        counters.update(
            {
                "published": runner.published,
                "failed": runner.failed,
                "skipped_busy": runner.skipped,
                "cancelled": runner.cancelled,
                "distinct_tracks": ctx.assets["engine"].distinct_tracks,
            }
        )
        ctx.state["counters"] = counters
        ctx.state["final_tracks"] = recorder.snapshot
        log("session_done", counters)

    def _replay(self, source: ReplaySource, runner: CycleRunner, *, max_cycles: int) -> dict:
        cycles = 0
        for t_ms, record in source:
            outcome = runner.run_cycle(record, t_ms)
            if outcome in (CycleOutcome.PUBLISHED, CycleOutcome.FAILED):
                cycles += 1
            if max_cycles and cycles >= max_cycles:
                break
        return {"cycles": cycles, "ticks": cycles, "dropped_ticks": 0, "records_skipped": source.skipped}

    def _live(self, cfg: SessionConfig, source, runner: CycleRunner, recorder: SessionRecorder, log) -> dict:
        loop = DetectionLoop(
            source,
            runner,
            interval_ms=float(cfg.loop.detection_interval_ms),
            max_cycles=int(cfg.loop.max_cycles),
            log=log,
        )
        preview = bool(cfg.preview.enabled) and cv2 is not None
        poll_s = float(cfg.loop.detection_interval_ms) / 1000.0

        loop.start()
        try:
            while not loop.wait(timeout=poll_s):
                if not preview:
                    continue
                frame = recorder.latest_frame
                if frame is None:
                    continue
                cv2.imshow("speedtrack", recorder.renderer.preview_frame(frame, cfg.preview.max_width))
                key = cv2.waitKey(1)
                if key in (ord("q"), 27):
                    log("stop_requested", {"by": "preview"})
                    loop.stop()
        except KeyboardInterrupt:
            log("stop_requested", {"by": "keyboard"})
            loop.stop()
            loop.wait()
        finally:
            if preview:
                cv2.destroyAllWindows()

        if loop.error is not None:
            raise loop.error
        return {
            "cycles": loop.cycles,
            "ticks": loop.ticks,
            "dropped_ticks": loop.dropped_ticks,
            "source_exhausted": int(loop.source_exhausted),
        }
