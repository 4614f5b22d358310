"""Heuristic single-camera object tracker with speed and motion-state estimation."""

__version__ = "0.1.0"
