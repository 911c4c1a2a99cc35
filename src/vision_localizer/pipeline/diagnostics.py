"""Per-camera diagnostics records and sinks."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from vision_localizer.core.logging import get_logger
from vision_localizer.core.types import CameraState, ConfidenceVector
from vision_localizer.geometry import Pose3d

logger = get_logger(__name__)

DEFAULT_PREFIX = "Vision/ApriltagCameras"


def _pose_values(pose: Pose3d) -> list[float]:
    r = pose.rotation
    return [pose.x, pose.y, pose.z, r.roll, r.pitch, r.yaw]


@dataclass(frozen=True)
class CameraDiagnostics:
    """What one camera saw and produced in one cycle.

    Attributes:
        camera_name: Source camera
        timestamp: Frame timestamp in seconds
        state: VALID or INVALID for this cycle
        confidence: Standard deviations attached to the pose
        corners: Pixel corners of every resolved tag, four per tag
        tag_poses: Field poses of the resolved tags
        pose: Estimated platform pose (the sentinel when invalid)
        accepted: Whether the estimate was forwarded to the consumer
    """

    camera_name: str
    timestamp: float
    state: CameraState
    confidence: ConfidenceVector
    corners: tuple[tuple[float, float], ...]
    tag_poses: tuple[Pose3d, ...]
    pose: Pose3d
    accepted: bool
    tag_ids: tuple[int, ...] = field(default=())

    def to_records(self, prefix: str = DEFAULT_PREFIX) -> dict[str, object]:
        """Flatten into telemetry key/value pairs."""
        base = f"{prefix}/{self.camera_name}"
        return {
            f"{base}/STDDevs": list(self.confidence.as_tuple()),
            f"{base}/Corners": [list(c) for c in self.corners],
            f"{base}/TagPoses": [_pose_values(p) for p in self.tag_poses],
            f"{base}/Pose": _pose_values(self.pose),
            f"{base}/State": self.state.name,
            f"{base}/Timestamp": self.timestamp,
        }


DiagnosticsSink = Callable[[CameraDiagnostics], None]


class LoggingDiagnosticsSink:
    """Writes diagnostics to the package logger at DEBUG level."""

    def __call__(self, record: CameraDiagnostics) -> None:
        logger.debug(
            "%s t=%.3f %s tags=%s pose=(%.2f, %.2f, %.2f) std=(%.3g, %.3g, %.3g)",
            record.camera_name,
            record.timestamp,
            record.state.name,
            list(record.tag_ids),
            record.pose.x,
            record.pose.y,
            record.pose.rotation.yaw,
            *record.confidence.as_tuple(),
        )


class RecordingDiagnosticsSink:
    """Keeps every record in memory, plus the latest per camera."""

    def __init__(self) -> None:
        self.records: list[CameraDiagnostics] = []
        self.latest: dict[str, CameraDiagnostics] = {}

    def __call__(self, record: CameraDiagnostics) -> None:
        self.records.append(record)
        self.latest[record.camera_name] = record

    def clear(self) -> None:
        """Drop recorded diagnostics."""
        self.records.clear()
        self.latest.clear()
