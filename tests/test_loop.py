import threading
import time

import pytest

from speedtrack.runtime.cycle import CycleRunner
from speedtrack.runtime.loop import DetectionLoop
from speedtrack.session.detection.providers import DetectionProvider
from speedtrack.tracking.engine import TrackingEngine

from _factories import det_at


class CountingSource:
    def __init__(self, frames=None):
        self.frames = frames
        self.reads = 0

    def read(self):
        self.reads += 1
        if self.frames is not None and self.reads > self.frames:
            return None
        return f"frame-{self.reads}"


class FixedDetector(DetectionProvider):
    def __init__(self, delay_s=0.0):
        self.delay_s = delay_s

    def detect(self, frame):
        if self.delay_s:
            time.sleep(self.delay_s)
        return [det_at(100, 100)]


def _loop(source, detector, **kw):
    published = []
    runner = CycleRunner(detector, TrackingEngine(), lambda tracks, now: published.append(tracks))
    return DetectionLoop(source, runner, **kw), published


def test_stops_after_max_cycles():
    loop, published = _loop(CountingSource(), FixedDetector(), interval_ms=1, max_cycles=3)
    loop.start()
    assert loop.wait(timeout=5)
    assert loop.cycles == 3
    assert len(published) == 3
    assert not loop.running


def test_stops_when_source_is_exhausted():
    loop, published = _loop(CountingSource(frames=2), FixedDetector(), interval_ms=1)
    loop.start()
    assert loop.wait(timeout=5)
    assert loop.source_exhausted
    assert loop.cycles == 2
    assert len(published) == 2


def test_slow_detector_drops_ticks_instead_of_queueing():
    loop, published = _loop(CountingSource(), FixedDetector(delay_s=0.05), interval_ms=2, max_cycles=2)
    loop.start()
    assert loop.wait(timeout=5)
    assert loop.cycles == 2
    assert len(published) == 2
    assert loop.dropped_ticks > 0


def test_stop_discards_cycle_in_flight():
    entered = threading.Event()
    release = threading.Event()

    class BlockingDetector(DetectionProvider):
        def detect(self, frame):
            entered.set()
            release.wait(timeout=5)
            return [det_at(100, 100)]

    loop, published = _loop(CountingSource(), BlockingDetector(), interval_ms=1)
    loop.start()
    assert entered.wait(timeout=5)

    loop.stop()
    release.set()
    assert loop.wait(timeout=5)
    assert published == []
    assert loop.runner.cancelled == 1


def test_source_error_ends_loop():
    class BrokenSource:
        def read(self):
            raise OSError("camera unplugged")

    loop, published = _loop(BrokenSource(), FixedDetector(), interval_ms=1)
    loop.start()
    assert loop.wait(timeout=5)
    assert isinstance(loop.error, OSError)
    assert published == []


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        _loop(CountingSource(), FixedDetector(), interval_ms=0)


def test_cannot_start_twice():
    loop, _ = _loop(CountingSource(frames=1), FixedDetector(), interval_ms=1)
    loop.start()
    with pytest.raises(RuntimeError):
        loop.start()
    loop.wait(timeout=5)


def test_engine_failure_is_logged_as_cycle_error():
    class BrokenEngine(TrackingEngine):
        def step(self, detections, now_ms):
            raise ValueError("out-of-order sample")

    events = []
    runner = CycleRunner(FixedDetector(), BrokenEngine(), lambda tracks, now: None)
    loop = DetectionLoop(CountingSource(), runner, interval_ms=1, log=lambda ev, p: events.append((ev, p)))
    loop.start()
    assert loop.wait(timeout=5)

    assert isinstance(loop.error, ValueError)
    assert [ev for ev, _ in events if ev.endswith("_error")] == ["cycle_error"]
    assert dict(events)["cycle_error"]["type"] == "ValueError"


def test_source_failure_is_logged_as_source_error():
    class BrokenSource:
        def read(self):
            raise OSError("camera unplugged")

    events = []
    runner = CycleRunner(FixedDetector(), TrackingEngine(), lambda tracks, now: None)
    loop = DetectionLoop(BrokenSource(), runner, interval_ms=1, log=lambda ev, p: events.append((ev, p)))
    loop.start()
    assert loop.wait(timeout=5)

    assert [ev for ev, _ in events if ev.endswith("_error")] == ["source_error"]
    assert dict(events)["source_error"]["type"] == "OSError"
