from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Protocol


class Stage(Protocol):
    """Protocol for pipeline stages."""
    name: str
    def run(self, ctx: "StageContext") -> None: ...


@dataclass
class StageContext:
    """Shared data passed between session stages.

    `closers` collects release callbacks (camera, video writer, output files)
    registered by stages; the runner calls them in reverse order once all
    stages finished or one of them raised.
    """
    cfg: Any
    state: Dict[str, Any] = field(default_factory=dict)
    assets: Dict[str, Any] = field(default_factory=dict)
    closers: List[Callable[[], None]] = field(default_factory=list)

    def on_close(self, fn: Callable[[], None]) -> None:
        self.closers.append(fn)


@dataclass
class PipelineRunner:
    """Sequential runner for session stages."""
    stages: List[Stage]
    fail_fast: bool = True

    def _close(self, ctx: StageContext) -> None:
        log = ctx.assets.get("log")
        while ctx.closers:
            fn = ctx.closers.pop()
            try:
                fn()
            except Exception as e:
                if log:
                    log("close_error", {"closer": getattr(fn, "__qualname__", repr(fn)), "error": repr(e)})

    def run(self, ctx: StageContext) -> StageContext:
        try:
            for st in self.stages:
                log = ctx.assets.get("log")
                if log:
                    log("stage_start", {"stage": st.name})
                t0 = time.perf_counter()
                try:
                    st.run(ctx)
                except Exception as e:
                    log = ctx.assets.get("log")
                    if log:
                        log("stage_error", {"stage": st.name, "error": repr(e)})
                    if self.fail_fast:
                        raise
                    ctx.state.setdefault("errors", []).append((st.name, repr(e)))
                log = ctx.assets.get("log")
                if log:
                    log("stage_done", {"stage": st.name, "seconds": round(time.perf_counter() - t0, 3)})
        finally:
            self._close(ctx)
        return ctx
