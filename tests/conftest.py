"""Pytest fixtures for Vision Localizer tests."""

from __future__ import annotations

import math
from collections.abc import Callable

import pytest

from vision_localizer.core.config import ConfidenceSettings, EstimatorSettings
from vision_localizer.core.types import CameraFrame, CameraInfo
from vision_localizer.estimation.estimator import SingleCameraEstimator
from vision_localizer.geometry import Pose2d, Pose3d, Rotation3d
from vision_localizer.vision.layout import FieldTagLayout, TagLayoutProvider
from vision_localizer.vision.sources import SimulatedFrameSource

FIELD_LENGTH = 16.0
FIELD_WIDTH = 8.0


@pytest.fixture
def front_camera() -> CameraInfo:
    """Forward-facing camera 0.2 m ahead of the platform center, 0.5 m up."""
    return CameraInfo(name="Front", robot_to_camera=Pose3d(0.2, 0.0, 0.5))


@pytest.fixture
def rear_camera() -> CameraInfo:
    """Rear-facing camera."""
    return CameraInfo(
        name="Rear",
        robot_to_camera=Pose3d(-0.2, 0.0, 0.5, Rotation3d(yaw=math.pi)),
    )


@pytest.fixture
def wall_layout() -> FieldTagLayout:
    """Two tags on a wall at x=6 facing -x, plus one behind the platform."""
    return FieldTagLayout(
        tags={
            1: Pose3d(6.0, 3.5, 0.5, Rotation3d(yaw=math.pi)),
            2: Pose3d(6.0, 4.5, 0.5, Rotation3d(yaw=math.pi)),
            3: Pose3d(0.0, 4.0, 0.5, Rotation3d(yaw=0.0)),
        },
        field_length=FIELD_LENGTH,
        field_width=FIELD_WIDTH,
    )


@pytest.fixture
def single_tag_layout() -> FieldTagLayout:
    """One tag at (6, 4) facing -x."""
    return FieldTagLayout(
        tags={1: Pose3d(6.0, 4.0, 0.5, Rotation3d(yaw=math.pi))},
        field_length=FIELD_LENGTH,
        field_width=FIELD_WIDTH,
    )


@pytest.fixture
def layout_provider(wall_layout: FieldTagLayout) -> TagLayoutProvider:
    """Provider with a derived red layout."""
    return TagLayoutProvider(wall_layout)


@pytest.fixture
def true_pose() -> Pose2d:
    """Ground-truth platform pose, slightly rotated, ~3 m from the wall tags."""
    return Pose2d(x=3.0, y=4.0, heading=0.1)


@pytest.fixture
def confidence_settings() -> ConfidenceSettings:
    """Confidence settings with easy-to-check baselines."""
    return ConfidenceSettings(
        single_tag_std_devs=(1.0, 1.0, 2.0),
        multi_tag_std_devs=(0.5, 0.5, 1.0),
        reject_distance=4.0,
        distance_scale_divisor=30.0,
    )


@pytest.fixture
def estimator(
    front_camera: CameraInfo, confidence_settings: ConfidenceSettings
) -> SingleCameraEstimator:
    """Estimator for the front camera."""
    return SingleCameraEstimator(front_camera, confidence_settings, EstimatorSettings())


@pytest.fixture
def simulate() -> Callable[..., CameraFrame]:
    """Factory for noise-free simulated frames at a fixed pose and time."""

    def _simulate(
        camera: CameraInfo, layout: FieldTagLayout, pose: Pose2d, timestamp: float = 1.0
    ) -> CameraFrame:
        source = SimulatedFrameSource(camera, layout, lambda: pose, clock=lambda: timestamp)
        return source.read()

    return _simulate
