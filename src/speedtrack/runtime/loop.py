from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Protocol

from speedtrack.runtime.cycle import CycleOutcome, CycleRunner


class FrameSource(Protocol):
    """Anything with read() -> frame | None (None once exhausted)."""
    def read(self) -> Any: ...


class DetectionLoop:
    """Fixed-interval cycle scheduler with a single in-flight slot.

    A timer thread ticks every `interval_ms`. Each tick hands one cycle
    (read frame, run_cycle) to a single worker thread, unless the previous
    cycle is still running; such ticks are dropped and counted, never
    queued, so a slow detector cannot build up a backlog.

    The loop ends when the source returns None, when `max_cycles` cycles
    reached the detector, or on stop(). stop() also cancels the cycle in
    flight through the runner, so nothing is published after it.
    """

    def __init__(
        self,
        source: FrameSource,
        runner: CycleRunner,
        *,
        interval_ms: float = 33.0,
        max_cycles: int = 0,
        clock: Callable[[], float] = time.monotonic,
        log: Callable[..., None] = lambda *a, **k: None,
    ):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {interval_ms!r}")
        self.source = source
        self.runner = runner
        self.interval_ms = float(interval_ms)
        self.max_cycles = int(max_cycles)
        self.clock = clock
        self.log = log

        self._stop = threading.Event()
        self._slot = threading.Lock()
        self._inflight: Optional[Future] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._thread: Optional[threading.Thread] = None

        self.ticks = 0
        self.dropped_ticks = 0
        self.cycles = 0
        self.source_exhausted = False
        self.error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("loop already started")
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speedtrack-cycle")
        self._thread = threading.Thread(target=self._tick_loop, name="speedtrack-timer", daemon=True)
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop ended; False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def stop(self) -> None:
        """Halt the timer and discard the cycle in flight."""
        self._stop.set()
        self.runner.cancel()

    def _tick_loop(self) -> None:
        interval_s = self.interval_ms / 1000.0
        try:
            while not self._stop.is_set():
                self._on_tick()
                if self._stop.wait(interval_s):
                    break
        finally:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
            if self.dropped_ticks:
                self.log("tick_dropped", {"dropped": self.dropped_ticks, "ticks": self.ticks})

    def _on_tick(self) -> None:
        with self._slot:
            self.ticks += 1
            if self._inflight is not None and not self._inflight.done():
                self.dropped_ticks += 1
                return
            if self._stop.is_set():
                return
            self._inflight = self._executor.submit(self._cycle)

    def _cycle(self) -> None:
        try:
            frame = self.source.read()
        except Exception as e:
            self._fail("source_error", e)
            return
        if frame is None:
            self.source_exhausted = True
            self._stop.set()
            return

        try:
            outcome = self.runner.run_cycle(frame, self.clock() * 1000.0)
        except Exception as e:
            self._fail("cycle_error", e)
            return
        if outcome in (CycleOutcome.PUBLISHED, CycleOutcome.FAILED):
            self.cycles += 1
        if self.max_cycles and self.cycles >= self.max_cycles:
            self._stop.set()

    def _fail(self, event: str, exc: Exception) -> None:
        self.error = exc
        self.log(event, {"error": repr(exc), "type": type(exc).__name__, "cycles": self.cycles})
        self._stop.set()
