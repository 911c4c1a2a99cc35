"""Core infrastructure: config, types, exceptions, and logging."""

from vision_localizer.core.config import Settings, get_settings
from vision_localizer.core.exceptions import (
    FrameSourceError,
    LayoutError,
    PoseSolveError,
    VisionLocalizerError,
)
from vision_localizer.core.logging import get_logger, setup_logging
from vision_localizer.core.types import (
    SENTINEL_POSE,
    Alliance,
    CameraFrame,
    CameraInfo,
    CameraState,
    ConfidenceVector,
    FusionResult,
    HeadingSample,
    PoseStrategy,
    TagObservation,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Types
    "Alliance",
    "PoseStrategy",
    "CameraState",
    "CameraInfo",
    "TagObservation",
    "CameraFrame",
    "HeadingSample",
    "ConfidenceVector",
    "FusionResult",
    "SENTINEL_POSE",
    # Exceptions
    "VisionLocalizerError",
    "LayoutError",
    "FrameSourceError",
    "PoseSolveError",
    # Logging
    "setup_logging",
    "get_logger",
]
