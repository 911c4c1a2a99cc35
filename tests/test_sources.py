"""Tests for simulated and detector-backed frame sources."""

import cv2
import numpy as np
import pytest
from numpy.typing import NDArray

from vision_localizer.core.exceptions import FrameSourceError
from vision_localizer.core.types import CameraInfo
from vision_localizer.geometry import Pose2d, Pose3d
from vision_localizer.vision.layout import FieldTagLayout
from vision_localizer.vision.sources import (
    DetectorFrameSource,
    FrameSource,
    SimulatedFrameSource,
)


class TestSimulatedFrameSource:
    """Tests for SimulatedFrameSource."""

    def test_sees_tags_in_front_only(
        self, front_camera: CameraInfo, wall_layout: FieldTagLayout, true_pose: Pose2d
    ) -> None:
        """The front camera sees the wall tags but not the one behind it."""
        source = SimulatedFrameSource(
            front_camera, wall_layout, lambda: true_pose, clock=lambda: 2.5
        )
        frame = source.read()

        assert frame.timestamp == 2.5
        assert sorted(o.fiducial_id for o in frame.observations) == [1, 2]
        for observation in frame.observations:
            assert len(observation.corners) == 4
            assert 0.0 <= observation.ambiguity <= 1.0

    def test_rear_camera_sees_rear_tag(
        self, rear_camera: CameraInfo, wall_layout: FieldTagLayout, true_pose: Pose2d
    ) -> None:
        """The rear camera sees only the tag behind the platform."""
        frame = SimulatedFrameSource(rear_camera, wall_layout, lambda: true_pose).read()
        assert [o.fiducial_id for o in frame.observations] == [3]

    def test_tag_facing_away_is_hidden(
        self, front_camera: CameraInfo, wall_layout: FieldTagLayout
    ) -> None:
        """Tags seen from behind are not reported."""
        behind_wall = Pose2d(8.0, 4.0, heading=3.14159)
        frame = SimulatedFrameSource(front_camera, wall_layout, lambda: behind_wall).read()
        assert {o.fiducial_id for o in frame.observations}.isdisjoint({1, 2})

    def test_corner_order(
        self, front_camera: CameraInfo, single_tag_layout: FieldTagLayout
    ) -> None:
        """Corners run bottom-left, bottom-right, top-right, top-left in the image."""
        frame = SimulatedFrameSource(
            front_camera, single_tag_layout, lambda: Pose2d(3.0, 4.0)
        ).read()
        bl, br, tr, tl = frame.observations[0].corners

        assert bl[0] < br[0] and tl[0] < tr[0]
        # Image v grows downward.
        assert bl[1] > tl[1] and br[1] > tr[1]

    def test_noise_is_seeded(
        self, front_camera: CameraInfo, wall_layout: FieldTagLayout, true_pose: Pose2d
    ) -> None:
        """Equal seeds give equal noisy frames; noise moves the corners."""

        def make(seed: int) -> SimulatedFrameSource:
            return SimulatedFrameSource(
                front_camera,
                wall_layout,
                lambda: true_pose,
                clock=lambda: 1.0,
                pixel_noise_std=0.5,
                seed=seed,
            )

        clean = SimulatedFrameSource(
            front_camera, wall_layout, lambda: true_pose, clock=lambda: 1.0
        ).read()

        assert make(7).read() == make(7).read()
        assert make(7).read() != clean

    def test_is_frame_source(self, front_camera: CameraInfo, wall_layout: FieldTagLayout) -> None:
        """Satisfies the FrameSource protocol."""
        source = SimulatedFrameSource(front_camera, wall_layout, lambda: Pose2d(0.0, 0.0))
        assert isinstance(source, FrameSource)
        assert source.name == "Front"


def _marker_image(tag_id: int, size: int = 200, border: int = 100) -> NDArray[np.uint8]:
    dictionary = cv2.aruco.getPredefinedDictionary(cv2.aruco.DICT_APRILTAG_36h11)
    marker = cv2.aruco.generateImageMarker(dictionary, tag_id, size)
    return cv2.copyMakeBorder(
        marker, border, border, border, border, cv2.BORDER_CONSTANT, value=255
    )


class TestDetectorFrameSource:
    """Tests for DetectorFrameSource."""

    @pytest.fixture
    def camera(self) -> CameraInfo:
        return CameraInfo(name="Bench", robot_to_camera=Pose3d(), cx=200.0, cy=200.0)

    def test_detects_marker(self, camera: CameraInfo) -> None:
        """A generated 36h11 marker is detected with observation corner order."""
        image = _marker_image(5)
        source = DetectorFrameSource(camera, lambda: image, clock=lambda: 4.0)

        frame = source.read()

        assert frame is not None
        assert frame.timestamp == 4.0
        assert [o.fiducial_id for o in frame.observations] == [5]
        bl, br, tr, tl = frame.observations[0].corners
        assert bl[0] < br[0] and tl[0] < tr[0]
        assert bl[1] > tl[1] and br[1] > tr[1]
        assert tl[0] == pytest.approx(100.0, abs=2.0)
        assert tl[1] == pytest.approx(100.0, abs=2.0)

    def test_detects_in_color_image(self, camera: CameraInfo) -> None:
        """BGR images are converted before detection."""
        image = cv2.cvtColor(_marker_image(11), cv2.COLOR_GRAY2BGR)
        source = DetectorFrameSource(camera, lambda: image)
        assert [o.fiducial_id for o in source.detect(image)] == [11]

    def test_blank_image(self, camera: CameraInfo) -> None:
        """No markers gives an empty frame."""
        image = np.full((400, 400), 255, dtype=np.uint8)
        frame = DetectorFrameSource(camera, lambda: image).read()

        assert frame is not None
        assert not frame.has_targets

    def test_no_image(self, camera: CameraInfo) -> None:
        """No image available gives no frame."""
        assert DetectorFrameSource(camera, lambda: None).read() is None

    def test_capture_failure(self, camera: CameraInfo) -> None:
        """Supplier failures surface as FrameSourceError."""

        def broken() -> NDArray[np.uint8]:
            raise RuntimeError("device disconnected")

        with pytest.raises(FrameSourceError):
            DetectorFrameSource(camera, broken).read()

    def test_flat_id_array(self, camera: CameraInfo) -> None:
        """Detectors returning ids shaped (N,) are handled like (N, 1)."""

        class FlatIdDetector:
            def detectMarkers(self, image: NDArray[np.uint8]) -> tuple:  # noqa: N802
                corners = np.array([[100, 100], [300, 100], [300, 300], [100, 300]], np.float32)
                return (corners.reshape(1, 4, 2),), np.array([5]), ()

        image = np.full((400, 400), 255, dtype=np.uint8)
        source = DetectorFrameSource(camera, lambda: image)
        source._detector = FlatIdDetector()  # type: ignore[assignment]

        (observation,) = source.detect(image)

        assert observation.fiducial_id == 5
        assert observation.corners == ((100, 300), (300, 300), (300, 100), (100, 100))
        assert -1.0 <= observation.ambiguity <= 1.0
