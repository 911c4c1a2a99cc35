"""Camera frame sources: simulated projection and OpenCV tag detection."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import cv2
import numpy as np
from numpy.typing import NDArray

from vision_localizer.core.exceptions import FrameSourceError
from vision_localizer.core.logging import get_logger
from vision_localizer.core.types import CameraFrame, CameraInfo, TagObservation
from vision_localizer.geometry import Pose2d, Pose3d
from vision_localizer.vision.layout import DEFAULT_TAG_SIZE_M, FieldTagLayout
from vision_localizer.vision.solver import project_points, tag_ambiguity, to_optical_frame

logger = get_logger(__name__)

# AprilTag / ArUco dictionary mapping
TAG_DICTS = {
    "DICT_APRILTAG_16h5": cv2.aruco.DICT_APRILTAG_16h5,
    "DICT_APRILTAG_25h9": cv2.aruco.DICT_APRILTAG_25h9,
    "DICT_APRILTAG_36h10": cv2.aruco.DICT_APRILTAG_36h10,
    "DICT_APRILTAG_36h11": cv2.aruco.DICT_APRILTAG_36h11,
    "DICT_4X4_50": cv2.aruco.DICT_4X4_50,
    "DICT_6X6_100": cv2.aruco.DICT_6X6_100,
}

# OpenCV reports corners top-left, top-right, bottom-right, bottom-left.
_OPENCV_TO_OBSERVATION_ORDER = [3, 2, 1, 0]

MIN_DEPTH_M = 0.05


@runtime_checkable
class FrameSource(Protocol):
    """Anything that yields one camera's latest frame per cycle."""

    @property
    def name(self) -> str: ...

    def read(self) -> CameraFrame | None:
        """Latest frame, or None when nothing is available."""
        ...


def _to_corner_tuple(points: NDArray[np.floating]) -> tuple[tuple[float, float], ...]:
    return tuple((float(x), float(y)) for x, y in points)


class SimulatedFrameSource:
    """Synthesizes tag observations from a ground-truth platform pose.

    Every layout tag in front of the camera, facing it and fully inside the
    image is projected through the camera model.
    """

    def __init__(
        self,
        camera: CameraInfo,
        layout: FieldTagLayout,
        pose_supplier: Callable[[], Pose2d],
        clock: Callable[[], float] = time.monotonic,
        pixel_noise_std: float = 0.0,
        seed: int = 0,
    ) -> None:
        """Initialize simulated source.

        Args:
            camera: Simulated camera
            layout: Ground-truth tag layout
            pose_supplier: Returns the true platform pose
            clock: Timestamp source in seconds
            pixel_noise_std: Gaussian corner noise in pixels
            seed: Noise generator seed
        """
        self.camera = camera
        self.layout = layout
        self._pose_supplier = pose_supplier
        self._clock = clock
        self.pixel_noise_std = pixel_noise_std
        self._rng = np.random.default_rng(seed)

    @property
    def name(self) -> str:
        """Camera name."""
        return self.camera.name

    def read(self) -> CameraFrame:
        """Project the visible tags for the current true pose."""
        timestamp = self._clock()
        robot_pose = Pose3d.from_pose2d(self._pose_supplier())
        camera_pose = robot_pose.transform_by(self.camera.robot_to_camera)
        return CameraFrame(timestamp=timestamp, observations=tuple(self.observe(camera_pose)))

    def observe(self, camera_pose: Pose3d) -> list[TagObservation]:
        """Tag observations seen from a field-frame camera pose."""
        observations: list[TagObservation] = []
        for tag_id in self.layout:
            corners = self.layout.corners_of(tag_id)
            tag_pose = self.layout.pose_of(tag_id)
            if corners is None or tag_pose is None:
                continue
            if not self._is_facing(tag_pose, camera_pose):
                continue
            if np.any(to_optical_frame(corners, camera_pose)[:, 2] < MIN_DEPTH_M):
                continue

            pixels = project_points(corners, camera_pose, self.camera)
            if self.pixel_noise_std > 0:
                pixels = pixels + self._rng.normal(0.0, self.pixel_noise_std, pixels.shape)
            if not self._in_image(pixels):
                continue

            observations.append(
                TagObservation(
                    fiducial_id=tag_id,
                    corners=_to_corner_tuple(pixels),
                    ambiguity=tag_ambiguity(self.layout.tag_size, pixels, self.camera),
                )
            )
        return observations

    @staticmethod
    def _is_facing(tag_pose: Pose3d, camera_pose: Pose3d) -> bool:
        normal = tag_pose.rotation.matrix[:, 0]
        return float(normal @ (camera_pose.translation - tag_pose.translation)) > 0.0

    def _in_image(self, pixels: NDArray[np.floating]) -> bool:
        return bool(
            np.all(pixels[:, 0] >= 0)
            and np.all(pixels[:, 0] < self.camera.width)
            and np.all(pixels[:, 1] >= 0)
            and np.all(pixels[:, 1] < self.camera.height)
        )


class DetectorFrameSource:
    """Detects AprilTags in camera images with OpenCV's ArUco module."""

    def __init__(
        self,
        camera: CameraInfo,
        image_supplier: Callable[[], NDArray[np.uint8] | None],
        clock: Callable[[], float] = time.monotonic,
        dictionary: str = "DICT_APRILTAG_36h11",
        tag_size: float = DEFAULT_TAG_SIZE_M,
    ) -> None:
        """Initialize detector source.

        Args:
            camera: Camera that produced the images
            image_supplier: Returns the latest BGR or grayscale image, or None
            clock: Timestamp source in seconds
            dictionary: Tag family name (see ``TAG_DICTS``)
            tag_size: Tag edge length in meters, for ambiguity scoring
        """
        self.camera = camera
        self._image_supplier = image_supplier
        self._clock = clock
        self.dictionary = dictionary
        self.tag_size = tag_size
        self._detector: cv2.aruco.ArucoDetector | None = None

    @property
    def name(self) -> str:
        """Camera name."""
        return self.camera.name

    def _get_detector(self) -> cv2.aruco.ArucoDetector:
        """Get or create the tag detector."""
        if self._detector is None:
            dict_type = TAG_DICTS.get(self.dictionary, cv2.aruco.DICT_APRILTAG_36h11)
            tag_dict = cv2.aruco.getPredefinedDictionary(dict_type)
            parameters = cv2.aruco.DetectorParameters()
            self._detector = cv2.aruco.ArucoDetector(tag_dict, parameters)
        return self._detector

    def read(self) -> CameraFrame | None:
        """Grab an image and detect tags in it.

        Raises:
            FrameSourceError: If the image supplier fails
        """
        try:
            image = self._image_supplier()
        except Exception as e:
            raise FrameSourceError(f"{self.name}: image capture failed: {e}") from e

        if image is None:
            return None

        timestamp = self._clock()
        return CameraFrame(timestamp=timestamp, observations=tuple(self.detect(image)))

    def detect(self, image: NDArray[np.uint8]) -> list[TagObservation]:
        """Detect tags in a single image."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        corners, ids, _ = self._get_detector().detectMarkers(gray)

        if ids is None:
            return []

        # ids come back as (N, 1) or (N,) depending on the OpenCV release.
        observations = []
        for tag_id, tag_corners in zip(np.asarray(ids).reshape(-1), corners):
            pixels = np.asarray(tag_corners, dtype=np.float64).reshape(4, 2)
            pixels = pixels[_OPENCV_TO_OBSERVATION_ORDER]
            observations.append(
                TagObservation(
                    fiducial_id=int(tag_id),
                    corners=_to_corner_tuple(pixels),
                    ambiguity=tag_ambiguity(self.tag_size, pixels, self.camera),
                )
            )
        logger.debug("%s: detected tags %s", self.name, [o.fiducial_id for o in observations])
        return observations
