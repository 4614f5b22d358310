from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

try:  # pragma: no cover
    import cv2  # type: ignore
except Exception:  # pragma: no cover
    cv2 = None

VideoRef = Union[int, str]


@dataclass(frozen=True)
class VideoInfo:
    """Basic properties of an opened capture."""
    fps: Optional[float]
    frame_count: int
    width: int
    height: int


def _require_cv2() -> None:
    if cv2 is None:
        raise ImportError("OpenCV (cv2) is not installed. Install it, e.g.: pip install opencv-python")


def open_video(source: VideoRef, *, width: int = 0, height: int = 0):
    """Open a camera index or a video file with OpenCV."""
    _require_cv2()
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open video source: {source!r}")
    if isinstance(source, int):
        # Capture size is only a request for cameras; drivers may pick another.
        if width > 0:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(width))
        if height > 0:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(height))
    return cap


def capture_info(cap) -> VideoInfo:
    fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
    return VideoInfo(
        fps=fps if fps > 0 else None,
        frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0),
        width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0),
        height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0),
    )


class VideoFrameSource:
    """Frame source backed by cv2.VideoCapture.

    read() returns the next BGR frame or None once the stream has ended.
    """

    def __init__(self, source: VideoRef, *, width: int = 0, height: int = 0):
        self.source = source
        self._cap = open_video(source, width=width, height=height)
        self.info = capture_info(self._cap)

    def read(self):
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok:
            return None
        return frame

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
