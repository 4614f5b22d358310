from __future__ import annotations

"""Pydantic schema definitions for a tracking session."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class SourceCfg(BaseModel):
    """Where frames come from."""

    type: Literal["camera", "video", "replay"] = "camera"
    camera_index: int = 0
    # Video file for type=video, detections JSONL for type=replay.
    path: Optional[str] = None
    width: int = Field(640, ge=0)
    height: int = Field(480, ge=0)

    @model_validator(mode="after")
    def _path_required(self):
        if self.type in ("video", "replay") and not self.path:
            raise ValueError(f"source.path is required for source.type={self.type!r}")
        return self


class DetectorCfg(BaseModel):
    """Detector backend settings."""

    backend: Literal["yolo", "replay"] = "yolo"
    weights: str = "yolov8n.pt"
    device: str = "cpu"
    conf: float = Field(0.5, ge=0.0, le=1.0)
    iou: float = Field(0.45, ge=0.0, le=1.0)
    # Empty list means "keep every class".
    classes: List[str] = Field(default_factory=list)


class GateCfg(BaseModel):
    """Rectangular association gate in pixels (per axis, strict)."""

    dx_px: float = Field(50.0, gt=0)
    dy_px: float = Field(50.0, gt=0)


class TrackingCfg(BaseModel):
    """Association and track lifecycle settings."""

    position_history: int = Field(15, ge=1)
    object_timeout_ms: float = Field(1000.0, gt=0)
    gate: GateCfg = Field(default_factory=GateCfg)
    matching: Literal["first", "exclusive"] = "first"
    unmatched: Literal["drop", "retain"] = "drop"


class ActionsCfg(BaseModel):
    """Speed bands (km/h) for the motion-state label."""

    still_kmh: float = 1.0
    slow_kmh: float = 3.0
    walking_kmh: float = 8.0
    fast_walking_kmh: float = 15.0
    pattern_window: int = Field(3, ge=2)
    sitting_vertical_factor: float = Field(2.0, ge=0)

    @model_validator(mode="after")
    def _ascending(self):
        bands = [self.still_kmh, self.slow_kmh, self.walking_kmh, self.fast_walking_kmh]
        if bands != sorted(bands):
            raise ValueError(f"action speed bands must be ascending, got {bands}")
        return self


class KinematicsCfg(BaseModel):
    """Speed calibration. Defaults assume a generic webcam framing."""

    pixel_to_meter: float = Field(0.015, gt=0)
    min_movement_px: float = Field(2.0, ge=0)
    max_speed_kmh: float = Field(30.0, gt=0)
    speed_smoothing_window: int = Field(3, ge=1)
    actions: ActionsCfg = Field(default_factory=ActionsCfg)


class LoopCfg(BaseModel):
    """Cycle scheduling."""

    detection_interval_ms: float = Field(33.0, gt=0)
    # 0 means run until the source ends or the user stops the session.
    max_cycles: int = Field(0, ge=0)
    sample_every_n_cycles: int = Field(100, ge=1)


class PreviewCfg(BaseModel):
    """Preview rendering settings for quick inspection."""

    enabled: bool = False
    max_width: int = 800


class ExportCfg(BaseModel):
    """Run artefacts."""

    out_dir: str = "runs/session"
    save_tracks: bool = True
    save_video: bool = False
    video_fps: float = Field(30.0, gt=0)


class SessionConfig(BaseModel):
    """Tracking session configuration loaded from YAML."""

    run_id: Optional[str] = None
    debug: bool = False

    source: SourceCfg = Field(default_factory=SourceCfg)
    detector: DetectorCfg = Field(default_factory=DetectorCfg)
    tracking: TrackingCfg = Field(default_factory=TrackingCfg)
    kinematics: KinematicsCfg = Field(default_factory=KinematicsCfg)
    loop: LoopCfg = Field(default_factory=LoopCfg)
    preview: PreviewCfg = Field(default_factory=PreviewCfg)
    export: ExportCfg = Field(default_factory=ExportCfg)

    timestamp: str = Field(
        default_factory=lambda: datetime.now().strftime("%Y%m%d_%H%M%S"),
        description="Timestamp used to name the run folder when run_id is not set.",
    )

    @field_validator("run_id")
    @classmethod
    def _clean_run_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _replay_pairs(self):
        # A replay source carries its own detections; the two go together.
        if (self.source.type == "replay") != (self.detector.backend == "replay"):
            raise ValueError("source.type=replay and detector.backend=replay must be used together")
        return self
