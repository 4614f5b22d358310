from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

try:  # pragma: no cover
    import cv2  # type: ignore
except Exception:  # pragma: no cover
    cv2 = None

from speedtrack.tracking.track import TrackedObject

# BGR
GREEN = (0, 255, 0)
ORANGE = (0, 165, 255)
RED = (0, 0, 255)
GREY = (128, 128, 128)
WHITE = (255, 255, 255)


def color_for_score(score: float) -> Tuple[int, int, int]:
    if score > 0.8:
        return GREEN
    if score > 0.6:
        return ORANGE
    return RED


def track_label(tr: TrackedObject, *, show_id: bool = False) -> str:
    """Label text: class, action and, when moving, the speed in km/h."""
    speed = f" - {tr.speed_kmh} km/h" if tr.speed_kmh > 0 else ""
    label = f"{tr.class_name} ({tr.action.value}){speed}"
    if show_id:
        label = f"{label} | id:{tr.track_id}"
    return label


def _put_text(img, text: str, org: Tuple[int, int], scale: float = 0.5, thick: int = 1):
    """Render text onto an image if OpenCV is available."""
    if cv2 is None:
        return
    cv2.putText(img, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, WHITE, thick, cv2.LINE_AA)


def _resize_keep_aspect(frame, max_width: int):
    """Resize frame to max_width while preserving aspect ratio."""
    if cv2 is None:
        return frame
    h, w = frame.shape[:2]
    if max_width <= 0 or w <= max_width:
        return frame
    scale = float(max_width) / float(w)
    return cv2.resize(frame, (max_width, int(h * scale)))


@dataclass
class FrameRenderer:
    """Draw tracked objects (boxes, labels, recent trail) onto BGR frames."""

    show_ids: bool = False
    show_trails: bool = True
    show_stats: bool = True

    def render(
        self,
        frame_bgr,
        tracks: Sequence[TrackedObject],
        *,
        cycle: Optional[int] = None,
    ):
        if cv2 is None:
            return frame_bgr

        for tr in tracks:
            color = GREY if tr.is_stale else color_for_score(tr.score)
            x, y, w, h = [int(round(v)) for v in tr.bbox]
            cv2.rectangle(frame_bgr, (x, y), (x + w, y + h), color, 2)

            label = track_label(tr, show_id=self.show_ids)
            (tw, th), _ = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
            top = max(0, y - th - 10)
            cv2.rectangle(frame_bgr, (x - 1, top), (x + tw + 8, top + th + 8), color, -1)
            _put_text(frame_bgr, label, (x + 4, top + th + 3))

            if self.show_trails and len(tr.history) > 1:
                pts = [(int(p.x), int(p.y)) for p in tr.history]
                for a, b in zip(pts, pts[1:]):
                    cv2.line(frame_bgr, a, b, color, 1, cv2.LINE_AA)

        if self.show_stats:
            live = sum(1 for tr in tracks if not tr.is_stale)
            text = f"tracks {live}"
            if cycle is not None:
                text = f"cycle {cycle} | {text}"
            _put_text(frame_bgr, text, (10, 22), scale=0.6)

        return frame_bgr

    def preview_frame(self, frame_bgr, max_width: int):
        """Resize frame for preview display."""
        return _resize_keep_aspect(frame_bgr, max_width=max_width)
