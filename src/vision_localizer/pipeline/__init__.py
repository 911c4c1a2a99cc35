"""Multi-camera orchestration and diagnostics."""

from vision_localizer.pipeline.aggregator import CameraFusionAggregator, PoseConsumer
from vision_localizer.pipeline.diagnostics import (
    CameraDiagnostics,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    RecordingDiagnosticsSink,
)
from vision_localizer.pipeline.processor import LocalizationLoop

__all__ = [
    "CameraFusionAggregator",
    "PoseConsumer",
    "CameraDiagnostics",
    "DiagnosticsSink",
    "LoggingDiagnosticsSink",
    "RecordingDiagnosticsSink",
    "LocalizationLoop",
]
