"""Core data types and structures."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray

from vision_localizer.geometry import Pose3d


class Alliance(Enum):
    """Alliance color reported by the field each cycle."""

    BLUE = auto()
    RED = auto()
    UNKNOWN = auto()


class PoseStrategy(Enum):
    """How a camera turns its visible tags into a platform pose."""

    MULTI_TAG_PNP = "multi_tag_pnp"
    CLOSEST_TO_HEADING = "closest_to_heading"
    LOWEST_AMBIGUITY = "lowest_ambiguity"


class CameraState(Enum):
    """Per-cycle validity of a camera's estimate."""

    VALID = auto()
    INVALID = auto()


StdDevs = tuple[float, float, float]


@dataclass(frozen=True, slots=True)
class CameraInfo:
    """Static description of one fixed camera.

    Attributes:
        name: Unique camera name
        robot_to_camera: Camera pose in the platform frame
        fx, fy, cx, cy: Pinhole intrinsics in pixels
        dist_coeffs: OpenCV distortion coefficients (k1, k2, p1, p2, k3)
        width, height: Sensor resolution in pixels
        single_tag_std_devs: Override of the global single-tag baseline
        multi_tag_std_devs: Override of the global multi-tag baseline
        reject_distance: Override of the global single-tag reject distance
    """

    name: str
    robot_to_camera: Pose3d
    fx: float = 900.0
    fy: float = 900.0
    cx: float = 640.0
    cy: float = 400.0
    dist_coeffs: tuple[float, ...] = (0.0, 0.0, 0.0, 0.0, 0.0)
    width: int = 1280
    height: int = 800
    single_tag_std_devs: StdDevs | None = None
    multi_tag_std_devs: StdDevs | None = None
    reject_distance: float | None = None

    @property
    def camera_matrix(self) -> NDArray[np.float64]:
        """3x3 intrinsic matrix."""
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )

    @property
    def distortion(self) -> NDArray[np.float64]:
        """Distortion coefficients as an array."""
        return np.array(self.dist_coeffs, dtype=np.float64)


@dataclass(frozen=True, slots=True)
class TagObservation:
    """One detected fiducial in a camera image.

    Corners are pixel (x, y) points ordered bottom-left, bottom-right,
    top-right, top-left as seen by the camera. ``ambiguity`` is the ratio of
    best to alternate single-tag reprojection error (-1 when unknown).
    """

    fiducial_id: int
    corners: tuple[tuple[float, float], ...]
    ambiguity: float = -1.0

    def __post_init__(self) -> None:
        if len(self.corners) != 4:
            raise ValueError(f"tag {self.fiducial_id} needs 4 corners, got {len(self.corners)}")

    @property
    def corner_array(self) -> NDArray[np.float64]:
        """Corners as a (4, 2) array."""
        return np.array(self.corners, dtype=np.float64)


@dataclass(frozen=True, slots=True)
class CameraFrame:
    """Tag observations captured by one camera at one instant."""

    timestamp: float
    observations: tuple[TagObservation, ...] = ()

    @classmethod
    def empty(cls, timestamp: float) -> CameraFrame:
        """A frame carrying no observations."""
        return cls(timestamp=timestamp)

    @property
    def has_targets(self) -> bool:
        """Whether any tag was observed."""
        return bool(self.observations)


@dataclass(frozen=True, slots=True)
class HeadingSample:
    """Platform heading (radians) at a timestamp (seconds)."""

    timestamp: float
    heading: float


@dataclass(frozen=True, slots=True)
class ConfidenceVector:
    """Measurement standard deviations for (x, y, heading).

    ``MAX`` in every component means the estimate must not be trusted. NaN
    and infinite components are refused.
    """

    x: float
    y: float
    theta: float

    MAX = sys.float_info.max

    def __post_init__(self) -> None:
        for value in (self.x, self.y, self.theta):
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"confidence component must be finite and >= 0: {value}")

    @classmethod
    def rejected(cls) -> ConfidenceVector:
        """Sentinel meaning "reject this estimate"."""
        return cls(cls.MAX, cls.MAX, cls.MAX)

    @classmethod
    def from_tuple(cls, values: StdDevs) -> ConfidenceVector:
        """Build from an (x, y, theta) tuple."""
        return cls(*values)

    @property
    def is_finite(self) -> bool:
        """True when no component is the sentinel or non-finite."""
        return all(math.isfinite(v) and v < self.MAX for v in self.as_tuple())

    def scaled(self, factor: float) -> ConfidenceVector:
        """Component-wise multiplication by a non-negative factor."""
        return ConfidenceVector(self.x * factor, self.y * factor, self.theta * factor)

    def as_tuple(self) -> StdDevs:
        """Components as a tuple."""
        return self.x, self.y, self.theta


SENTINEL_POSE = Pose3d(x=100.0, y=100.0, z=100.0)


@dataclass(frozen=True, slots=True)
class FusionResult:
    """One camera's pose observation for one control cycle.

    Attributes:
        pose: Estimated platform pose in the field frame
        timestamp: Capture time of the source frame (seconds)
        camera_name: Camera that produced the estimate
        confidence: Standard deviations attached to the pose
        tag_ids: Resolved tag ids that contributed
        strategy: Strategy that produced the pose (None for the sentinel)
    """

    pose: Pose3d
    timestamp: float
    camera_name: str
    confidence: ConfidenceVector
    tag_ids: tuple[int, ...] = ()
    strategy: PoseStrategy | None = None

    @classmethod
    def sentinel(cls, camera_name: str, timestamp: float) -> FusionResult:
        """Explicit "no usable information" result."""
        return cls(
            pose=SENTINEL_POSE,
            timestamp=timestamp,
            camera_name=camera_name,
            confidence=ConfidenceVector.rejected(),
        )

    @property
    def is_valid(self) -> bool:
        """Whether the estimate carries finite confidence."""
        return self.confidence.is_finite

    @property
    def state(self) -> CameraState:
        """VALID/INVALID classification of this cycle."""
        return CameraState.VALID if self.is_valid else CameraState.INVALID
