from __future__ import annotations

"""Factory for detection providers based on the session config."""

from typing import Callable

from speedtrack.core.schema import SessionConfig
from speedtrack.session.detection.providers import DetectionProvider
from speedtrack.session.detection.replay_provider import ReplayDetector


def make_detector(cfg: SessionConfig, *, log: Callable[..., None] = lambda *a, **k: None) -> DetectionProvider:
    d = cfg.detector
    if d.backend == "replay":
        return ReplayDetector(classes=d.classes, log=log)

    if d.backend == "yolo":
        # Imported here so replay sessions never touch Ultralytics.
        from speedtrack.session.detection.yolo_provider import UltralyticsYoloDetector

        return UltralyticsYoloDetector(
            weights=d.weights,
            device=d.device,
            conf=d.conf,
            iou=d.iou,
            classes=d.classes,
        )

    raise ValueError(f"Unsupported detector backend: {d.backend}")
