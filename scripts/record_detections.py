#!/usr/bin/env python3
"""
Runs the YOLO detector over a video file and writes a detections JSONL that
`speedtrack replay` can play back deterministically.

Usage:
    python scripts/record_detections.py data/videos/walk.mp4 -o data/samples/walk.detections.jsonl
    python scripts/record_detections.py walk.mp4 -o walk.jsonl --weights yolov8s.pt --classes person,dog
"""

import argparse
from pathlib import Path

from speedtrack.core.io import JsonlWriter, VideoFrameSource
from speedtrack.session.detection.replay_provider import detection_to_dict
from speedtrack.session.detection.yolo_provider import UltralyticsYoloDetector


def main() -> None:
    p = argparse.ArgumentParser(description="Record per-frame detections for replay.")
    p.add_argument("video", help="Input video file.")
    p.add_argument("-o", "--out", required=True, help="Output detections JSONL.")
    p.add_argument("--weights", default="yolov8n.pt")
    p.add_argument("--device", default="cpu")
    p.add_argument("--conf", type=float, default=0.5)
    p.add_argument("--classes", default="", help="Comma-separated class names to keep.")
    p.add_argument("--fps", type=float, default=0.0, help="Override the video frame rate for timestamps.")
    p.add_argument("--max-frames", type=int, default=0)
    args = p.parse_args()

    source = VideoFrameSource(args.video)
    fps = args.fps or source.info.fps or 30.0
    detector = UltralyticsYoloDetector(
        weights=args.weights,
        device=args.device,
        conf=args.conf,
        classes=[c.strip() for c in args.classes.split(",") if c.strip()],
    )

    writer = JsonlWriter(Path(args.out))
    frame_idx = 0
    try:
        while True:
            frame = source.read()
            if frame is None:
                break
            dets = detector.detect(frame)
            writer.write(
                {
                    "t": round(frame_idx * 1000.0 / fps, 3),
                    "detections": [detection_to_dict(d) for d in dets],
                }
            )
            frame_idx += 1
            if args.max_frames and frame_idx >= args.max_frames:
                break
            if frame_idx % 100 == 0:
                print(f"{frame_idx} frames")
    finally:
        writer.close()
        source.release()

    print(f"OK: {frame_idx} frames -> {args.out}")


if __name__ == "__main__":
    main()
