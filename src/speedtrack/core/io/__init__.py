from .fs import ensure_dir
from .json import dump_json, iter_jsonl, JsonlWriter
from .video import VideoInfo, VideoFrameSource, open_video, capture_info

__all__ = [
    "ensure_dir",
    "dump_json",
    "iter_jsonl",
    "JsonlWriter",
    "VideoInfo",
    "VideoFrameSource",
    "open_video",
    "capture_info",
]
