from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from speedtrack.core.types import Detection
from speedtrack.session.detection.providers import DetectionProvider, keep_classes

try:  # pragma: no cover
    from ultralytics import YOLO  # type: ignore
except Exception:  # pragma: no cover
    YOLO = None


def xyxy_to_xywh(xyxy: np.ndarray) -> np.ndarray:
    """Convert (N, 4) corner boxes to (N, 4) top-left + size boxes."""
    boxes = np.asarray(xyxy, dtype=float).reshape(-1, 4)
    out = boxes.copy()
    out[:, 2] = boxes[:, 2] - boxes[:, 0]
    out[:, 3] = boxes[:, 3] - boxes[:, 1]
    return out


class UltralyticsYoloDetector(DetectionProvider):
    """Per-frame detection with an Ultralytics YOLO model (no built-in tracking)."""

    def __init__(
        self,
        *,
        weights: str,
        device: str = "cpu",
        conf: float = 0.5,
        iou: float = 0.45,
        classes: Sequence[str] = (),
    ):
        if YOLO is None:
            raise ImportError(
                "Ultralytics is not installed. Install it, e.g.: pip install 'speedtrack[yolo]'"
            )

        self._weights = str(weights)
        self._device = str(device)
        self._conf = float(conf)
        self._iou = float(iou)
        self._classes = list(classes)

        self.model = YOLO(self._weights)
        self.model.to(self._device)

    def get_label_map(self) -> Optional[Dict[int, str]]:
        names = getattr(self.model, "names", None)
        if isinstance(names, dict):
            return {int(k): str(v) for k, v in names.items()}
        if isinstance(names, (list, tuple)):
            return {i: str(v) for i, v in enumerate(names)}
        return None

    def class_names(self) -> Optional[List[str]]:
        label_map = self.get_label_map()
        if label_map is None:
            return None
        return [label_map[k] for k in sorted(label_map)]

    def detect(self, frame: Any) -> List[Detection]:
        res_list = self.model.predict(
            frame,
            conf=self._conf,
            iou=self._iou,
            device=self._device,
            verbose=False,
        )

        out: List[Detection] = []
        if not res_list:
            return out

        boxes = getattr(res_list[0], "boxes", None)
        if boxes is None or len(boxes) == 0:
            return out

        xywh = xyxy_to_xywh(boxes.xyxy.cpu().numpy())
        confs = boxes.conf.cpu().numpy().astype(float).tolist()
        class_ids = boxes.cls.cpu().numpy().astype(int).tolist()
        names = self.get_label_map() or {}

        for bb, sc, cid in zip(xywh, confs, class_ids):
            x, y, w, h = [float(v) for v in bb]
            out.append(
                Detection(
                    bbox=(x, y, w, h),
                    class_name=str(names.get(int(cid), str(cid))),
                    score=float(sc),
                )
            )
        return keep_classes(out, self._classes)
