from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Tuple

from speedtrack.session.detection.providers import DetectionProvider
from speedtrack.tracking.engine import TrackingEngine
from speedtrack.tracking.track import TrackedObject

PublishFn = Callable[[Tuple[TrackedObject, ...], float], None]


class CycleOutcome(Enum):
    PUBLISHED = "published"
    SKIPPED_BUSY = "skipped_busy"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CycleRunner:
    """Runs one detect -> associate -> publish cycle at a time.

    - A call made while another cycle is in flight returns SKIPPED_BUSY and
      never reaches the detector.
    - A detector error aborts the cycle: nothing is published and the
      engine keeps its previous snapshot.
    - cancel() invalidates the cycle in flight; its result is discarded.
    """

    def __init__(
        self,
        detector: DetectionProvider,
        engine: TrackingEngine,
        on_update: PublishFn,
        *,
        log: Callable[..., None] = lambda *a, **k: None,
    ):
        self.detector = detector
        self.engine = engine
        self.on_update = on_update
        self.log = log

        self._busy = threading.Lock()
        self._commit = threading.RLock()
        self._generation = 0

        self.published = 0
        self.failed = 0
        self.skipped = 0
        self.cancelled = 0

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def cancel(self) -> None:
        """Discard any cycle in flight and clear the live tracks."""
        with self._commit:
            self._generation += 1
            self.engine.reset()

    def run_cycle(self, frame: Any, now_ms: float) -> CycleOutcome:
        if not self._busy.acquire(blocking=False):
            self.skipped += 1
            return CycleOutcome.SKIPPED_BUSY
        try:
            generation = self._generation
            try:
                detections = self.detector.detect(frame)
            except Exception as e:
                self.failed += 1
                self.log("detect_error", {"error": repr(e), "t_ms": float(now_ms)})
                return CycleOutcome.FAILED

            with self._commit:
                if generation != self._generation:
                    self.cancelled += 1
                    return CycleOutcome.CANCELLED
                tracks = self.engine.step(detections or [], now_ms)
                self.on_update(tracks, float(now_ms))
                self.published += 1
            return CycleOutcome.PUBLISHED
        finally:
            self._busy.release()
