"""Distance-based measurement standard-deviation heuristic.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from vision_localizer.core.config import ConfidenceSettings
from vision_localizer.core.types import CameraInfo, ConfidenceVector, StdDevs
from vision_localizer.geometry import Pose2d


@dataclass(frozen=True)
class ConfidenceParameters:
    """Resolved heuristic parameters for one camera."""

    single_tag_std_devs: StdDevs
    multi_tag_std_devs: StdDevs
    reject_distance: float = 4.0
    distance_scale_divisor: float = 30.0

    @classmethod
    def for_camera(
        cls, settings: ConfidenceSettings, camera: CameraInfo | None = None
    ) -> ConfidenceParameters:
        """Global settings with the camera's overrides applied."""
        single = settings.single_tag_std_devs
        multi = settings.multi_tag_std_devs
        reject = settings.reject_distance
        if camera is not None:
            if camera.single_tag_std_devs is not None:
                single = camera.single_tag_std_devs
            if camera.multi_tag_std_devs is not None:
                multi = camera.multi_tag_std_devs
            if camera.reject_distance is not None:
                reject = camera.reject_distance
        return cls(
            single_tag_std_devs=tuple(single),  # type: ignore[arg-type]
            multi_tag_std_devs=tuple(multi),  # type: ignore[arg-type]
            reject_distance=reject,
            distance_scale_divisor=settings.distance_scale_divisor,
        )


def average_tag_distance(pose: Pose2d, tag_positions: Sequence[tuple[float, float]]) -> float:
    """Mean planar distance from the pose to each tag position.

    Returns:
        Average distance, or 0.0 for an empty sequence
    """
    if not tag_positions:
        return 0.0
    return sum(pose.distance_to(x, y) for x, y in tag_positions) / len(tag_positions)


def distance_scale(avg_dist: float, divisor: float) -> float:
    """Multiplier ``1 + avg_dist**2 / divisor`` applied to the baseline."""
    return 1.0 + (avg_dist * avg_dist) / divisor


def compute_confidence(
    pose: Pose2d,
    tag_positions: Sequence[tuple[float, float]],
    params: ConfidenceParameters,
) -> ConfidenceVector:
    """Standard deviations for a pose estimated from the given tags.

    Multi-tag solves start from the lower multi-tag baseline. A single tag
    farther than ``reject_distance`` is rejected outright. Otherwise the
    baseline grows quadratically with the average tag distance.

    Args:
        pose: Estimated platform pose
        tag_positions: Planar (x, y) field positions of the resolved tags
        params: Heuristic parameters

    Returns:
        Confidence vector, the rejected sentinel for no tags or a lone distant tag
    """
    num_tags = len(tag_positions)
    if num_tags == 0:
        return ConfidenceVector.rejected()

    avg_dist = average_tag_distance(pose, tag_positions)

    if num_tags == 1 and avg_dist > params.reject_distance:
        return ConfidenceVector.rejected()

    baseline = params.multi_tag_std_devs if num_tags > 1 else params.single_tag_std_devs
    return ConfidenceVector.from_tuple(baseline).scaled(
        distance_scale(avg_dist, params.distance_scale_divisor)
    )
