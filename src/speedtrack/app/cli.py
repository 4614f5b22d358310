from __future__ import annotations

import argparse
from typing import List, Optional

from speedtrack.core.config import dump_session_config, load_session_config
from speedtrack.core.schema import SessionConfig
from speedtrack.session.pipeline import SessionPipeline


def _comma_list(v: Optional[str]) -> List[str]:
    if not v:
        return []
    return [x.strip() for x in v.split(",") if x.strip()]


def _apply_overrides(cfg: SessionConfig, args: argparse.Namespace) -> SessionConfig:
    data = cfg.model_dump()

    if getattr(args, "run_id", None):
        data["run_id"] = args.run_id
    if getattr(args, "debug", False):
        data["debug"] = True
    if getattr(args, "out_dir", None):
        data["export"]["out_dir"] = args.out_dir
    if getattr(args, "max_cycles", None) is not None:
        data["loop"]["max_cycles"] = int(args.max_cycles)
    if getattr(args, "interval_ms", None) is not None:
        data["loop"]["detection_interval_ms"] = float(args.interval_ms)
    if getattr(args, "classes", None):
        data["detector"]["classes"] = _comma_list(args.classes)
    if getattr(args, "matching", None):
        data["tracking"]["matching"] = args.matching
    if getattr(args, "unmatched", None):
        data["tracking"]["unmatched"] = args.unmatched

    if getattr(args, "camera", None) is not None:
        data["source"].update({"type": "camera", "camera_index": int(args.camera), "path": None})
        if data["detector"]["backend"] == "replay":
            data["detector"]["backend"] = "yolo"
    if getattr(args, "video", None):
        data["source"].update({"type": "video", "path": args.video})
        if data["detector"]["backend"] == "replay":
            data["detector"]["backend"] = "yolo"
    if getattr(args, "detections", None):
        data["source"].update({"type": "replay", "path": args.detections})
        data["detector"]["backend"] = "replay"

    if getattr(args, "weights", None):
        data["detector"]["weights"] = args.weights
    if getattr(args, "device", None):
        data["detector"]["device"] = args.device
    if getattr(args, "conf", None) is not None:
        data["detector"]["conf"] = float(args.conf)

    if getattr(args, "preview", None) is not None:
        data["preview"]["enabled"] = bool(args.preview)
    if getattr(args, "save_video", None) is not None:
        data["export"]["save_video"] = bool(args.save_video)

    # Re-validate so overrides go through the same checks as the YAML.
    return SessionConfig.model_validate(data)


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _apply_overrides(load_session_config(args.config), args)
    out = SessionPipeline(echo=not args.quiet).run(cfg)
    print(f"OK: {out}")
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    cfg = _apply_overrides(load_session_config(args.config), args)
    print(dump_session_config(cfg), end="")
    return 0


def _add_tracking_flags(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--run-id", dest="run_id", help="Name of the run folder (default: timestamp).")
    sp.add_argument("--out-dir", help="Override export.out_dir.")
    sp.add_argument("--max-cycles", dest="max_cycles", type=int, help="Stop after N cycles (0 = unlimited).")
    sp.add_argument("--classes", help="Comma-separated class names to keep (e.g. person,dog).")
    sp.add_argument("--matching", choices=["first", "exclusive"], help="Association policy.")
    sp.add_argument("--unmatched", choices=["drop", "retain"], help="What happens to unmatched tracks.")
    sp.add_argument("--debug", action="store_true", help="Draw track ids into the overlay.")
    sp.add_argument("--quiet", action="store_true", help="Do not echo log events to stdout.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="speedtrack")
    sub = p.add_subparsers(dest="cmd", required=True)

    spr = sub.add_parser("run", help="Track objects from a camera or a video file")
    spr.add_argument("--config", default=None, help="Session YAML config (default: built-in defaults).")
    src = spr.add_mutually_exclusive_group()
    src.add_argument("--camera", type=int, help="Camera index.")
    src.add_argument("--video", help="Video file path.")
    src.add_argument("--detections", help="Recorded detections JSONL (replay).")
    spr.add_argument("--weights", help="YOLO weights path or name.")
    spr.add_argument("--device", help="cpu / cuda:0 etc.")
    spr.add_argument("--conf", type=float, help="Override detection conf threshold.")
    spr.add_argument("--interval-ms", dest="interval_ms", type=float, help="Cycle interval in milliseconds.")
    spr.add_argument("--preview", dest="preview", action="store_true", help="Show a preview window.")
    spr.add_argument("--no-preview", dest="preview", action="store_false", help="No preview window.")
    spr.add_argument("--save-video", dest="save_video", action="store_true", help="Save annotated video.")
    spr.add_argument("--no-save-video", dest="save_video", action="store_false", help="Do not save video.")
    spr.set_defaults(preview=None, save_video=None)
    _add_tracking_flags(spr)
    spr.set_defaults(func=cmd_run)

    spp = sub.add_parser("replay", help="Replay a recorded detections JSONL through the tracker")
    spp.add_argument("detections", help="Detections JSONL file.")
    spp.add_argument("--config", default=None, help="Session YAML config (default: built-in defaults).")
    _add_tracking_flags(spp)
    spp.set_defaults(func=cmd_run)

    sps = sub.add_parser("show-config", help="Print the validated configuration")
    sps.add_argument("--config", default=None, help="Session YAML config.")
    sps.set_defaults(func=cmd_show_config)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
