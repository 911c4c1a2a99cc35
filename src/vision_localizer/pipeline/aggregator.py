"""Multi-camera orchestration: estimate per camera, forward accepted poses."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

from vision_localizer.core.config import Settings, get_settings
from vision_localizer.core.logging import get_logger
from vision_localizer.core.types import (
    Alliance,
    CameraFrame,
    CameraInfo,
    ConfidenceVector,
    FusionResult,
    HeadingSample,
)
from vision_localizer.estimation.estimator import SingleCameraEstimator, resolve_tags
from vision_localizer.geometry import Pose2d
from vision_localizer.pipeline.diagnostics import (
    CameraDiagnostics,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
)
from vision_localizer.vision.layout import FieldTagLayout, TagLayoutProvider

logger = get_logger(__name__)

PoseConsumer = Callable[[Pose2d, float, ConfidenceVector], None]


class CameraFusionAggregator:
    """Drives every camera estimator once per control cycle.

    Each accepted estimate is forwarded on its own to the consumer (the
    external localization filter); combining simultaneous observations is
    the consumer's job. Estimates with rejected confidence are never
    forwarded. One diagnostics record per camera is emitted every cycle.
    """

    def __init__(
        self,
        cameras: Sequence[tuple[CameraInfo, SingleCameraEstimator]],
        layout_provider: TagLayoutProvider,
        consumer: PoseConsumer,
        diagnostics_sink: DiagnosticsSink | None = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            cameras: (camera, estimator) pairs, one per camera
            layout_provider: Resolves the tag layout for the cycle's alliance
            consumer: Receives (pose2d, timestamp, confidence) for accepted estimates
            diagnostics_sink: Receives one record per camera per cycle
                (logs at DEBUG if None)

        Raises:
            ValueError: If camera names repeat or do not match their estimator
        """
        names = [info.name for info, _ in cameras]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate camera names: {names}")
        for info, estimator in cameras:
            if estimator.name != info.name:
                raise ValueError(f"Estimator {estimator.name!r} paired with camera {info.name!r}")

        self._cameras = list(cameras)
        self.layout_provider = layout_provider
        self._consumer = consumer
        self._diagnostics_sink = diagnostics_sink or LoggingDiagnosticsSink()

    @classmethod
    def from_cameras(
        cls,
        cameras: Sequence[CameraInfo],
        layout_provider: TagLayoutProvider,
        consumer: PoseConsumer,
        settings: Settings | None = None,
        diagnostics_sink: DiagnosticsSink | None = None,
    ) -> CameraFusionAggregator:
        """Build one estimator per camera from application settings."""
        settings = settings or get_settings()
        pairs = [
            (info, SingleCameraEstimator(info, settings.confidence, settings.estimator))
            for info in cameras
        ]
        return cls(pairs, layout_provider, consumer, diagnostics_sink)

    @property
    def camera_names(self) -> list[str]:
        """Names of the managed cameras, in construction order."""
        return [info.name for info, _ in self._cameras]

    @property
    def estimators(self) -> list[SingleCameraEstimator]:
        """Managed estimators, in construction order."""
        return [estimator for _, estimator in self._cameras]

    def update(
        self,
        heading: HeadingSample,
        alliance: Alliance | None,
        frames: Mapping[str, CameraFrame | None],
    ) -> list[FusionResult]:
        """Run one control cycle.

        A camera with no frame (missing or None) is treated as a frame with
        zero tags at the heading's timestamp.

        Args:
            heading: This cycle's platform heading sample
            alliance: This cycle's alliance (Blue layout when unknown)
            frames: Latest frame per camera name

        Returns:
            One FusionResult per camera, in construction order
        """
        layout = self.layout_provider.resolve(alliance)
        results: list[FusionResult] = []

        for info, estimator in self._cameras:
            frame = frames.get(info.name) or CameraFrame.empty(heading.timestamp)

            estimator.ingest_heading(heading.timestamp, heading.heading)
            result = estimator.estimate(frame, layout)

            accepted = result.confidence.is_finite
            if accepted:
                self._consumer(result.pose.to_pose2d(), result.timestamp, result.confidence)

            self._diagnostics_sink(self._diagnostics(frame, layout, result, accepted))
            results.append(result)

        return results

    @staticmethod
    def _diagnostics(
        frame: CameraFrame,
        layout: FieldTagLayout,
        result: FusionResult,
        accepted: bool,
    ) -> CameraDiagnostics:
        resolved = resolve_tags(frame, layout)
        return CameraDiagnostics(
            camera_name=result.camera_name,
            timestamp=result.timestamp,
            state=result.state,
            confidence=result.confidence,
            corners=tuple(c for tag in resolved for c in tag.observation.corners),
            tag_poses=tuple(tag.tag_pose for tag in resolved),
            pose=result.pose,
            accepted=accepted,
            tag_ids=tuple(tag.fiducial_id for tag in resolved),
        )
