from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

try:  # pragma: no cover
    import cv2  # type: ignore
except Exception:  # pragma: no cover
    cv2 = None

from speedtrack.core.io import JsonlWriter
from speedtrack.session.logic.hist import action_hist, class_hist
from speedtrack.session.logic.output import build_cycle_record
from speedtrack.session.visual.renderer import FrameRenderer
from speedtrack.tracking.track import TrackedObject


class FrameTap:
    """Wraps a frame source and remembers the last frame it handed out.

    Cycles never overlap, so at publish time the remembered frame is the one
    the published tracks were detected on.
    """

    def __init__(self, source: Any):
        self.source = source
        self.last_frame = None

    def read(self):
        frame = self.source.read()
        self.last_frame = frame
        return frame


@dataclass
class SessionRecorder:
    """Publish callback: keeps the latest snapshot and feeds the output sinks."""

    log: Callable[..., None] = lambda *a, **k: None
    sample_every: int = 100
    tracks_writer: Optional[JsonlWriter] = None
    renderer: Optional[FrameRenderer] = None
    frame_tap: Optional[FrameTap] = None
    video_path: Optional[Path] = None
    video_fps: float = 30.0

    snapshot: Tuple[TrackedObject, ...] = field(default_factory=tuple)
    cycles: int = 0

    def __post_init__(self) -> None:
        self._video = None
        self._latest_frame = None
        self._lock = threading.Lock()

    @property
    def latest_frame(self):
        """Last rendered frame (for the preview window), or None."""
        with self._lock:
            return self._latest_frame

    def __call__(self, tracks: Tuple[TrackedObject, ...], now_ms: float) -> None:
        self.cycles += 1
        self.snapshot = tracks

        if self.tracks_writer is not None:
            self.tracks_writer.write(build_cycle_record(cycle=self.cycles, t_ms=now_ms, tracks=tracks))

        frame = self.frame_tap.last_frame if self.frame_tap is not None else None
        if frame is not None and self.renderer is not None:
            self.renderer.render(frame, tracks, cycle=self.cycles)
            self._write_video(frame)
            with self._lock:
                self._latest_frame = frame

        if self.cycles % max(1, int(self.sample_every)) == 0:
            self.log(
                "cycle_sample",
                {
                    "cycle": self.cycles,
                    "t_ms": float(now_ms),
                    "tracks": len(tracks),
                    "actions": action_hist(tracks),
                    "classes": class_hist(tracks),
                },
            )

    def _write_video(self, frame) -> None:
        if self.video_path is None or cv2 is None:
            return
        if self._video is None:
            h, w = frame.shape[:2]
            fourcc = cv2.VideoWriter_fourcc(*"mp4v")
            self._video = cv2.VideoWriter(str(self.video_path), fourcc, float(self.video_fps), (w, h))
        self._video.write(frame)

    def close(self) -> None:
        if self._video is not None:
            self._video.release()
            self._video = None
        if self.tracks_writer is not None:
            self.tracks_writer.close()
