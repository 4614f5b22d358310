from __future__ import annotations

from dataclasses import dataclass

from speedtrack.core.config import kinematics_params, tracking_params
from speedtrack.core.io import JsonlWriter, VideoFrameSource
from speedtrack.core.pipeline.base import StageContext
from speedtrack.core.schema import SessionConfig
from speedtrack.runtime.cycle import CycleRunner
from speedtrack.session.detection.factory import make_detector
from speedtrack.session.detection.replay_provider import ReplaySource
from speedtrack.session.logic.recorder import FrameTap, SessionRecorder
from speedtrack.session.visual.renderer import FrameRenderer
from speedtrack.tracking.engine import TrackingEngine


def _make_source(cfg: SessionConfig, log=lambda *a, **k: None):
    src = cfg.source
    if src.type == "replay":
        return ReplaySource(src.path, log=log)
    if src.type == "video":
        return VideoFrameSource(str(src.path))
    return VideoFrameSource(int(src.camera_index), width=src.width, height=src.height)


@dataclass
class BuildComponents:
    """Stage that constructs source, detector, engine, recorder and runner."""

    name: str = "build_components"

    def run(self, ctx: StageContext) -> None:
        cfg: SessionConfig = ctx.cfg
        run_root = ctx.state["run_root"]
        log = ctx.assets.get("log")

        source = _make_source(cfg, log=log)
        if isinstance(source, VideoFrameSource):
            ctx.on_close(source.release)
            info = source.info
            log("source_ready", {"source": str(source.source), "fps": info.fps, "size": [info.width, info.height]})

        detector = make_detector(cfg, log=log)
        ctx.on_close(detector.close)
        names = detector.class_names()
        log("detector_ready", {"backend": cfg.detector.backend, "classes_sample": names[:10] if names else None})

        engine = TrackingEngine(
            params=tracking_params(cfg),
            kinematics=kinematics_params(cfg),
            log=log,
        )

        tracks_writer = None
        if cfg.export.save_tracks:
            tracks_writer = JsonlWriter(run_root / "tracks.jsonl")

        # Frames only exist for camera/video sources; replay has nothing to draw on.
        has_frames = cfg.source.type != "replay"
        wants_frames = has_frames and (cfg.export.save_video or cfg.preview.enabled)

        frame_tap = FrameTap(source) if wants_frames else None
        recorder = SessionRecorder(
            log=log,
            sample_every=int(cfg.loop.sample_every_n_cycles),
            tracks_writer=tracks_writer,
            renderer=FrameRenderer(show_ids=bool(cfg.debug)) if wants_frames else None,
            frame_tap=frame_tap,
            video_path=(run_root / "session.mp4") if (has_frames and cfg.export.save_video) else None,
            video_fps=float(cfg.export.video_fps),
        )
        ctx.on_close(recorder.close)

        runner = CycleRunner(detector, engine, recorder, log=log)

        ctx.assets["source"] = frame_tap if frame_tap is not None else source
        ctx.assets["detector"] = detector
        ctx.assets["engine"] = engine
        ctx.assets["recorder"] = recorder
        ctx.assets["runner"] = runner
