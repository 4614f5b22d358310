import json

import pytest

from speedtrack.app.cli import main
from speedtrack.core.schema import SessionConfig
from speedtrack.session.detection.providers import DetectorError
from speedtrack.session.detection.replay_provider import (
    ReplayDetector,
    ReplaySource,
    detection_from_dict,
)
from speedtrack.session.pipeline import SessionPipeline


def _write_stream(path):
    """Person walking 12 px / 100 ms; the cycle at t=200 fails."""
    recs = [
        {"t": 0, "detections": [{"bbox": [100, 200, 60, 160], "class": "person", "score": 0.9}]},
        {"t": 100, "detections": [{"bbox": [112, 200, 60, 160], "class": "person", "score": 0.9}]},
        {"t": 200, "error": "detector timeout"},
        {"t": 300, "detections": [{"bbox": [136, 200, 60, 160], "class": "person", "score": 0.9}]},
        {"t": 400, "detections": [
            {"bbox": [148, 200, 60, 160], "class": "person", "score": 0.9},
            {"bbox": [1, 2, 3], "class": "person", "score": 0.3},
        ]},
    ]
    path.write_text("\n".join(json.dumps(r) for r in recs) + "\n", encoding="utf-8")
    return path


def test_detection_from_dict_rejects_malformed():
    assert detection_from_dict({"bbox": [0, 0, 10, 10], "class": "cat", "score": 0.5}).class_name == "cat"
    assert detection_from_dict({"bbox": [0, 0, 10], "class": "cat"}) is None
    assert detection_from_dict({"bbox": [0, "x", 10, 10], "class": "cat"}) is None
    assert detection_from_dict({"bbox": [0, float("nan"), 10, 10], "class": "cat"}) is None
    assert detection_from_dict({"bbox": [0, 0, 10, 10]}) is None
    assert detection_from_dict("not a dict") is None


def test_replay_detector_filters_and_fails():
    skipped = []
    det = ReplayDetector(classes=["person"], log=lambda ev, p: skipped.append(p["index"]))
    frame = {
        "t": 0,
        "detections": [
            {"bbox": [0, 0, 10, 10], "class": "person", "score": 0.9},
            {"bbox": [0, 0, 10, 10], "class": "chair", "score": 0.9},
            {"bbox": None, "class": "person"},
        ],
    }
    out = det.detect(frame)
    assert [d.class_name for d in out] == ["person"]
    assert skipped == [2]

    with pytest.raises(DetectorError):
        det.detect({"t": 1, "error": "boom"})


def test_replay_source_requires_timestamps(tmp_path):
    p = tmp_path / "bad.jsonl"
    p.write_text('{"detections": []}\n', encoding="utf-8")
    with pytest.raises(ValueError):
        list(ReplaySource(p))
    with pytest.raises(FileNotFoundError):
        ReplaySource(tmp_path / "missing.jsonl")


def test_replay_source_skips_bad_and_backward_timestamps(tmp_path):
    p = tmp_path / "jumpy.jsonl"
    recs = [{"t": 100}, {"t": 50}, {"t": "abc"}, {"t": float("inf")}, {"t": 200}]
    p.write_text("\n".join(json.dumps(r) for r in recs) + "\n", encoding="utf-8")

    events = []
    src = ReplaySource(p, log=lambda ev, payload: events.append((ev, payload)))
    assert [t for t, _ in src] == [100.0, 200.0]
    assert src.skipped == 3
    assert [ev for ev, _ in events] == ["replay_record_skipped"] * 3
    assert events[0][1]["where"].endswith(":2")


def test_pipeline_survives_out_of_order_replay(tmp_path):
    p = tmp_path / "jumpy.jsonl"
    box = {"bbox": [100, 200, 60, 160], "class": "person", "score": 0.9}
    recs = [
        {"t": 100, "detections": [box]},
        {"t": 50, "detections": [box]},
        {"t": "abc", "detections": [box]},
        {"t": 200, "detections": [box]},
    ]
    p.write_text("\n".join(json.dumps(r) for r in recs) + "\n", encoding="utf-8")
    cfg = SessionConfig.model_validate(
        {
            "run_id": "jumpy",
            "source": {"type": "replay", "path": str(p)},
            "detector": {"backend": "replay"},
            "export": {"out_dir": str(tmp_path / "runs")},
        }
    )
    run_root = SessionPipeline(echo=False).run(cfg)

    summary = json.loads((run_root / "session.json").read_text(encoding="utf-8"))
    assert summary["status"] == "completed"
    assert summary["counters"]["published"] == 2
    assert summary["counters"]["records_skipped"] == 2


def test_session_pipeline_end_to_end(tmp_path):
    stream = _write_stream(tmp_path / "walk.jsonl")
    cfg = SessionConfig.model_validate(
        {
            "run_id": "r1",
            "source": {"type": "replay", "path": str(stream)},
            "detector": {"backend": "replay"},
            "export": {"out_dir": str(tmp_path / "runs")},
        }
    )
    run_root = SessionPipeline(echo=False).run(cfg)
    assert run_root == tmp_path / "runs" / "r1"

    lines = (run_root / "tracks.jsonl").read_text(encoding="utf-8").splitlines()
    cycles = [json.loads(x) for x in lines]
    assert [c["t_ms"] for c in cycles] == [0, 100, 300, 400]
    last = cycles[-1]["tracks"]
    assert len(last) == 1
    assert last[0]["id"] == cycles[0]["tracks"][0]["id"]
    assert last[0]["speed_kmh"] == 6
    assert last[0]["action"] == "walking"
    assert last[0]["history_len"] == 4

    summary = json.loads((run_root / "session.json").read_text(encoding="utf-8"))
    assert summary["status"] == "completed"
    assert summary["counters"]["published"] == 4
    assert summary["counters"]["failed"] == 1
    assert summary["counters"]["distinct_tracks"] == 1
    assert summary["final"]["actions"] == {"walking": 1}

    events = [json.loads(x)["event"] for x in (run_root / "session.log.jsonl").read_text(encoding="utf-8").splitlines()]
    assert "detect_error" in events
    assert "detection_skipped" in events
    assert events[-1] == "stage_done"


def test_cli_replay(tmp_path, capsys):
    stream = _write_stream(tmp_path / "walk.jsonl")
    rc = main(["replay", str(stream), "--out-dir", str(tmp_path / "out"), "--run-id", "cli", "--quiet", "--max-cycles", "2"])
    assert rc == 0
    assert "OK:" in capsys.readouterr().out

    summary = json.loads((tmp_path / "out" / "cli" / "session.json").read_text(encoding="utf-8"))
    assert summary["counters"]["cycles"] == 2
    assert summary["meta"]["config"]["source"]["type"] == "replay"


def test_cli_show_config(capsys):
    assert main(["show-config"]) == 0
    out = capsys.readouterr().out
    assert "detection_interval_ms: 33.0" in out
    assert "pixel_to_meter: 0.015" in out
