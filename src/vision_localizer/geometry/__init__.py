"""Rigid-body geometry for field, platform and camera frames."""

from vision_localizer.geometry.transforms import (
    Pose2d,
    Pose3d,
    Rotation3d,
    angle_difference,
    wrap_angle,
)

__all__ = ["Pose2d", "Pose3d", "Rotation3d", "angle_difference", "wrap_angle"]
