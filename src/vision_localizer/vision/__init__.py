"""Vision layer: tag layouts, PnP solvers, heading buffer and frame sources."""

from vision_localizer.vision.heading import HeadingBuffer
from vision_localizer.vision.layout import FieldTagLayout, TagLayoutProvider
from vision_localizer.vision.solver import PoseHypothesis, solve_multi_tag, solve_single_tag
from vision_localizer.vision.sources import (
    DetectorFrameSource,
    FrameSource,
    SimulatedFrameSource,
)

__all__ = [
    "HeadingBuffer",
    "FieldTagLayout",
    "TagLayoutProvider",
    "PoseHypothesis",
    "solve_multi_tag",
    "solve_single_tag",
    "FrameSource",
    "SimulatedFrameSource",
    "DetectorFrameSource",
]
