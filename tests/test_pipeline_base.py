import json
import threading
from dataclasses import dataclass

import pytest

from speedtrack.core.pipeline.base import PipelineRunner, StageContext
from speedtrack.core.pipeline.log import JsonlLogger


@dataclass
class _Stage:
    name: str
    fail: bool = False

    def run(self, ctx):
        ctx.state.setdefault("ran", []).append(self.name)
        ctx.on_close(lambda: ctx.state.setdefault("closed", []).append(self.name))
        if self.fail:
            raise RuntimeError(self.name)


def test_closers_run_in_reverse_even_on_failure():
    ctx = StageContext(cfg=None)
    with pytest.raises(RuntimeError):
        PipelineRunner(stages=[_Stage("a"), _Stage("b", fail=True), _Stage("c")]).run(ctx)
    assert ctx.state["ran"] == ["a", "b"]
    assert ctx.state["closed"] == ["b", "a"]


def test_non_fail_fast_collects_errors():
    events = []
    ctx = StageContext(cfg=None, assets={"log": lambda ev, p: events.append(ev)})
    PipelineRunner(stages=[_Stage("a", fail=True), _Stage("b")], fail_fast=False).run(ctx)
    assert ctx.state["ran"] == ["a", "b"]
    assert ctx.state["errors"][0][0] == "a"
    assert events.count("stage_error") == 1


def test_logger_lines_stay_whole_across_threads(tmp_path):
    log = JsonlLogger(tmp_path / "events.jsonl", echo=False)
    payload = {"blob": "x" * 4096}

    def spam(name):
        for i in range(50):
            log(name, {"i": i, **payload})

    threads = [threading.Thread(target=spam, args=(f"ev{n}",)) for n in range(4)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    lines = (tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 200
    assert all(json.loads(x)["blob"] == payload["blob"] for x in lines)
