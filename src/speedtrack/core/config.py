from __future__ import annotations

"""YAML and Pydantic config loaders."""

from pathlib import Path
from typing import Any, Type, TypeVar

import yaml

from speedtrack.core.schema import SessionConfig
from speedtrack.tracking.association import TrackingParams
from speedtrack.tracking.kinematics import ActionThresholds, KinematicsParams

T = TypeVar("T")


def load_yaml(path: str | Path) -> Any:
    """Load YAML from file; an empty file loads as an empty mapping."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return {} if data is None else data


def load_pydantic(path: str | Path, cls: Type[T]) -> T:
    """Load YAML and validate it against a Pydantic v2 model."""
    data = load_yaml(path)
    return cls.model_validate(data)  # type: ignore[attr-defined]


def load_session_config(path: str | Path | None = None) -> SessionConfig:
    """Load session configuration YAML; all defaults when path is None."""
    if path is None:
        return SessionConfig()
    return load_pydantic(path, SessionConfig)


def dump_session_config(cfg: SessionConfig) -> str:
    return yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False)


def tracking_params(cfg: SessionConfig) -> TrackingParams:
    t = cfg.tracking
    return TrackingParams(
        position_history=int(t.position_history),
        object_timeout_ms=float(t.object_timeout_ms),
        gate_dx_px=float(t.gate.dx_px),
        gate_dy_px=float(t.gate.dy_px),
        matching=t.matching,
        unmatched=t.unmatched,
    )


def kinematics_params(cfg: SessionConfig) -> KinematicsParams:
    k = cfg.kinematics
    a = k.actions
    return KinematicsParams(
        pixel_to_meter=float(k.pixel_to_meter),
        min_movement_px=float(k.min_movement_px),
        max_speed_kmh=float(k.max_speed_kmh),
        speed_smoothing_window=int(k.speed_smoothing_window),
        actions=ActionThresholds(
            still_kmh=float(a.still_kmh),
            slow_kmh=float(a.slow_kmh),
            walking_kmh=float(a.walking_kmh),
            fast_walking_kmh=float(a.fast_walking_kmh),
            pattern_window=int(a.pattern_window),
            sitting_vertical_factor=float(a.sitting_vertical_factor),
        ),
    )
