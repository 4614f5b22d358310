from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from speedtrack.core.types import Detection


class DetectorError(RuntimeError):
    """Raised by a provider when a frame could not be processed."""


class DetectionProvider(ABC):
    """Backend-specific detector.

    detect(frame) returns the detections for one frame, possibly empty.
    It may raise; the cycle runner treats that as a failed cycle.
    """

    @abstractmethod
    def detect(self, frame: Any) -> List[Detection]:
        ...

    def class_names(self) -> Optional[List[str]]:
        return None

    def close(self) -> None:
        return None


def keep_classes(detections: Sequence[Detection], classes: Sequence[str]) -> List[Detection]:
    """Filter detections by class name; an empty filter keeps everything."""
    if not classes:
        return list(detections)
    wanted = set(classes)
    return [d for d in detections if d.class_name in wanted]
