"""Rigid-body transforms in the field (NWU) convention.

Field frame: +x away from the blue alliance wall, +y to the left, +z up.
Rotations follow roll (x), pitch (y), yaw (z), composed as Rz @ Ry @ Rx.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.floating[Any]]


def wrap_angle(angle: float) -> float:
    """Wrap an angle in radians to [-pi, pi)."""
    return (angle + math.pi) % (2 * math.pi) - math.pi


def angle_difference(a: float, b: float) -> float:
    """Absolute shortest angular distance between two headings."""
    return abs(wrap_angle(a - b))


@dataclass(frozen=True, slots=True)
class Rotation3d:
    """3D rotation stored as roll, pitch, yaw in radians."""

    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    @property
    def matrix(self) -> FloatArray:
        """3x3 rotation matrix (Rz @ Ry @ Rx)."""
        cr, sr = math.cos(self.roll), math.sin(self.roll)
        cp, sp = math.cos(self.pitch), math.sin(self.pitch)
        cy, sy = math.cos(self.yaw), math.sin(self.yaw)
        rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])
        ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
        rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
        return rz @ ry @ rx

    @classmethod
    def from_matrix(cls, matrix: FloatArray) -> Rotation3d:
        """Build a rotation from a 3x3 rotation matrix."""
        r = np.asarray(matrix, dtype=np.float64)
        pitch = -math.asin(float(np.clip(r[2, 0], -1.0, 1.0)))
        roll = math.atan2(float(r[2, 1]), float(r[2, 2]))
        yaw = math.atan2(float(r[1, 0]), float(r[0, 0]))
        return cls(roll=roll, pitch=pitch, yaw=yaw)

    @classmethod
    def from_quaternion(cls, w: float, x: float, y: float, z: float) -> Rotation3d:
        """Build a rotation from a (not necessarily normalized) quaternion."""
        norm = math.sqrt(w * w + x * x + y * y + z * z)
        if norm == 0.0:
            raise ValueError("quaternion must be non-zero")
        w, x, y, z = w / norm, x / norm, y / norm, z / norm
        matrix = np.array(
            [
                [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
                [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
                [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
            ]
        )
        return cls.from_matrix(matrix)


@dataclass(frozen=True, slots=True)
class Pose2d:
    """Planar pose: position in meters, heading in radians."""

    x: float
    y: float
    heading: float = 0.0

    def distance_to(self, x: float, y: float) -> float:
        """Euclidean distance from this pose's position to a planar point."""
        return math.hypot(self.x - x, self.y - y)


@dataclass(frozen=True, slots=True)
class Pose3d:
    """Position plus orientation.

    Also used as a rigid transform: ``a.transform_by(b)`` applies ``b``
    expressed in ``a``'s frame.
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rotation: Rotation3d = field(default_factory=Rotation3d)

    @property
    def translation(self) -> FloatArray:
        """Translation as a (3,) array."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def matrix(self) -> FloatArray:
        """4x4 homogeneous matrix."""
        t = np.eye(4, dtype=np.float64)
        t[:3, :3] = self.rotation.matrix
        t[:3, 3] = self.translation
        return t

    @property
    def is_finite(self) -> bool:
        """True when every coordinate and angle is finite."""
        r = self.rotation
        return all(math.isfinite(v) for v in (self.x, self.y, self.z, r.roll, r.pitch, r.yaw))

    @classmethod
    def from_matrix(cls, matrix: FloatArray) -> Pose3d:
        """Build a pose from a 4x4 homogeneous matrix."""
        m = np.asarray(matrix, dtype=np.float64)
        return cls(
            x=float(m[0, 3]),
            y=float(m[1, 3]),
            z=float(m[2, 3]),
            rotation=Rotation3d.from_matrix(m[:3, :3]),
        )

    @classmethod
    def from_pose2d(cls, pose: Pose2d, z: float = 0.0) -> Pose3d:
        """Lift a planar pose onto the floor plane."""
        return cls(x=pose.x, y=pose.y, z=z, rotation=Rotation3d(yaw=pose.heading))

    def transform_by(self, other: Pose3d) -> Pose3d:
        """Compose ``self`` with a transform expressed in ``self``'s frame."""
        return Pose3d.from_matrix(self.matrix @ other.matrix)

    def inverse(self) -> Pose3d:
        """Inverse rigid transform."""
        r = self.rotation.matrix
        t = np.eye(4, dtype=np.float64)
        t[:3, :3] = r.T
        t[:3, 3] = -r.T @ self.translation
        return Pose3d.from_matrix(t)

    def relative_to(self, origin: Pose3d) -> Pose3d:
        """Express this pose in the frame of ``origin``."""
        return origin.inverse().transform_by(self)

    def transform_points(self, points: FloatArray) -> FloatArray:
        """Map (N, 3) points from this pose's local frame into the parent frame."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return pts @ self.rotation.matrix.T + self.translation

    def to_pose2d(self) -> Pose2d:
        """Planar projection (x, y, yaw)."""
        return Pose2d(x=self.x, y=self.y, heading=self.rotation.yaw)
