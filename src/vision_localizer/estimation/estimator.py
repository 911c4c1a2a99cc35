"""Per-camera pose and confidence estimation."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from vision_localizer.core.config import ConfidenceSettings, EstimatorSettings
from vision_localizer.core.exceptions import PoseSolveError
from vision_localizer.core.logging import get_logger
from vision_localizer.core.types import (
    CameraFrame,
    CameraInfo,
    FusionResult,
    PoseStrategy,
    TagObservation,
)
from vision_localizer.estimation.confidence import ConfidenceParameters, compute_confidence
from vision_localizer.geometry import Pose3d, angle_difference
from vision_localizer.vision.heading import HeadingBuffer
from vision_localizer.vision.layout import FieldTagLayout
from vision_localizer.vision.solver import PoseHypothesis, solve_multi_tag, solve_single_tag

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedTag:
    """An observation whose id exists in the active layout."""

    observation: TagObservation
    tag_pose: Pose3d
    field_corners: NDArray[np.float64]
    tag_size: float

    @property
    def fiducial_id(self) -> int:
        return self.observation.fiducial_id


def resolve_tags(frame: CameraFrame, layout: FieldTagLayout) -> list[ResolvedTag]:
    """Keep the observations whose ids are known to the layout, in frame order."""
    resolved: list[ResolvedTag] = []
    for observation in frame.observations:
        tag_pose = layout.pose_of(observation.fiducial_id)
        corners = layout.corners_of(observation.fiducial_id)
        if tag_pose is None or corners is None:
            continue
        resolved.append(ResolvedTag(observation, tag_pose, corners, layout.tag_size))
    return resolved


def _ambiguity_key(tag: ResolvedTag) -> float:
    # Unknown ambiguity (negative) sorts last.
    ambiguity = tag.observation.ambiguity
    return ambiguity if ambiguity >= 0 else math.inf


class SingleCameraEstimator:
    """Turns one camera's tag observations into a platform pose estimate.

    Strategy depends on how many observed tags resolve against the layout:
    none gives the sentinel result, two or more are solved together, and a
    single tag is disambiguated against the buffered platform heading.

    The heading buffer is the only state kept between calls.
    """

    def __init__(
        self,
        camera: CameraInfo,
        confidence_settings: ConfidenceSettings | None = None,
        settings: EstimatorSettings | None = None,
    ) -> None:
        """Initialize estimator for a camera.

        Args:
            camera: Camera intrinsics, mounting and overrides
            confidence_settings: Std-dev heuristic settings (uses defaults if None)
            settings: Estimator settings (uses defaults if None)
        """
        self.camera = camera
        self.settings = settings or EstimatorSettings()
        self.params = ConfidenceParameters.for_camera(
            confidence_settings or ConfidenceSettings(), camera
        )
        self._strategy = self.settings.primary_strategy
        self._headings = HeadingBuffer(self.settings.heading_buffer_seconds)

    @property
    def name(self) -> str:
        """Camera name."""
        return self.camera.name

    @property
    def strategy(self) -> PoseStrategy:
        """Primary pose strategy."""
        return self._strategy

    @property
    def headings(self) -> HeadingBuffer:
        """Buffered heading samples."""
        return self._headings

    def set_pose_strategy(self, strategy: PoseStrategy) -> None:
        """Change the primary pose strategy."""
        if strategy != self._strategy:
            logger.info("%s: pose strategy %s -> %s", self.name, self._strategy.name, strategy.name)
        self._strategy = strategy

    def ingest_heading(self, timestamp: float, heading: float) -> None:
        """Buffer a heading sample for single-tag disambiguation.

        Must be called before :meth:`estimate` for the same cycle; otherwise
        the estimate is disambiguated against an older heading.
        """
        self._headings.add(timestamp, heading)

    def estimate(self, frame: CameraFrame, layout: FieldTagLayout) -> FusionResult:
        """Estimate the platform pose from one frame.

        Args:
            frame: This cycle's tag observations
            layout: Active field tag layout

        Returns:
            FusionResult, the sentinel result when no tag resolves
        """
        resolved = resolve_tags(frame, layout)
        if not resolved:
            return FusionResult.sentinel(self.name, frame.timestamp)

        try:
            hypothesis, used = self._solve(resolved, frame.timestamp)
        except PoseSolveError as e:
            logger.warning("%s: pose solve failed at t=%.3f: %s", self.name, frame.timestamp, e)
            return FusionResult.sentinel(self.name, frame.timestamp)

        pose = hypothesis.robot_pose
        if not pose.is_finite:
            logger.warning("%s: non-finite pose at t=%.3f, dropping", self.name, frame.timestamp)
            return FusionResult.sentinel(self.name, frame.timestamp)
        tag_positions = [(tag.tag_pose.x, tag.tag_pose.y) for tag in resolved]
        confidence = compute_confidence(pose.to_pose2d(), tag_positions, self.params)

        logger.debug(
            "%s: %d tag(s) via %s -> (%.2f, %.2f, %.2f rad), err %.2f px",
            self.name,
            len(resolved),
            used.name,
            pose.x,
            pose.y,
            pose.rotation.yaw,
            hypothesis.reprojection_error,
        )

        return FusionResult(
            pose=pose,
            timestamp=frame.timestamp,
            camera_name=self.name,
            confidence=confidence,
            tag_ids=tuple(tag.fiducial_id for tag in resolved),
            strategy=used,
        )

    def _solve(
        self, resolved: Sequence[ResolvedTag], timestamp: float
    ) -> tuple[PoseHypothesis, PoseStrategy]:
        """Pick and run the solve strategy for the resolved tags."""
        if self._strategy is PoseStrategy.MULTI_TAG_PNP and len(resolved) > 1:
            try:
                return self._solve_multi_tag(resolved), PoseStrategy.MULTI_TAG_PNP
            except PoseSolveError as e:
                logger.warning("%s: multi-tag solve failed, falling back: %s", self.name, e)
            return self._solve_single_tag(resolved, timestamp, PoseStrategy.CLOSEST_TO_HEADING)

        if self._strategy is PoseStrategy.LOWEST_AMBIGUITY:
            return self._solve_single_tag(resolved, timestamp, PoseStrategy.LOWEST_AMBIGUITY)
        return self._solve_single_tag(resolved, timestamp, PoseStrategy.CLOSEST_TO_HEADING)

    def _solve_multi_tag(self, resolved: Sequence[ResolvedTag]) -> PoseHypothesis:
        object_points = np.vstack([tag.field_corners for tag in resolved])
        image_points = np.vstack([tag.observation.corner_array for tag in resolved])
        return solve_multi_tag(object_points, image_points, self.camera)

    def _solve_single_tag(
        self,
        resolved: Sequence[ResolvedTag],
        timestamp: float,
        strategy: PoseStrategy,
    ) -> tuple[PoseHypothesis, PoseStrategy]:
        tag = min(resolved, key=_ambiguity_key)
        hypotheses = solve_single_tag(
            tag.tag_pose, tag.tag_size, tag.observation.corner_array, self.camera
        )

        if strategy is PoseStrategy.CLOSEST_TO_HEADING:
            heading = self._headings.sample(timestamp)
            if heading is not None:
                best = min(
                    hypotheses,
                    key=lambda h: angle_difference(h.robot_pose.rotation.yaw, heading),
                )
                return best, PoseStrategy.CLOSEST_TO_HEADING

        return hypotheses[0], PoseStrategy.LOWEST_AMBIGUITY
