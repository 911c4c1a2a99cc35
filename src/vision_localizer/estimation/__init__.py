"""Pose estimation: per-camera solver strategy and confidence heuristic."""

from vision_localizer.estimation.confidence import (
    ConfidenceParameters,
    average_tag_distance,
    compute_confidence,
)
from vision_localizer.estimation.estimator import (
    ResolvedTag,
    SingleCameraEstimator,
    resolve_tags,
)

__all__ = [
    "ConfidenceParameters",
    "average_tag_distance",
    "compute_confidence",
    "ResolvedTag",
    "SingleCameraEstimator",
    "resolve_tags",
]
