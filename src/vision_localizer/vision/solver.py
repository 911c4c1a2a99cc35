"""OpenCV PnP solvers and camera/field frame conversions.

OpenCV's optical frame is x right, y down, z forward; camera poses in this
package use the field convention (x forward, y left, z up).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import cv2
import numpy as np
from numpy.typing import NDArray

from vision_localizer.core.exceptions import PoseSolveError
from vision_localizer.core.types import CameraInfo
from vision_localizer.geometry import Pose3d, Rotation3d

FloatArray = NDArray[np.floating[Any]]

# Maps a vector in the camera's field-convention frame to OpenCV's optical frame.
OPTICAL_FROM_CAMERA = np.array(
    [
        [0.0, -1.0, 0.0],
        [0.0, 0.0, -1.0],
        [1.0, 0.0, 0.0],
    ],
    dtype=np.float64,
)

# Tag frame (x out of the face) from the planar frame IPPE solves in (z out of the face).
TAG_FROM_PLANE = Pose3d(rotation=Rotation3d(roll=math.pi / 2, yaw=math.pi / 2))


def planar_tag_corners(tag_size: float) -> FloatArray:
    """Tag corners on the z=0 plane, ordered bottom-left, bottom-right, top-right, top-left."""
    half = tag_size / 2.0
    return np.array(
        [
            [-half, -half, 0.0],
            [half, -half, 0.0],
            [half, half, 0.0],
            [-half, half, 0.0],
        ],
        dtype=np.float64,
    )


@dataclass(frozen=True, slots=True)
class PoseHypothesis:
    """Candidate platform pose with its RMS reprojection error in pixels."""

    robot_pose: Pose3d
    camera_pose: Pose3d
    reprojection_error: float


def camera_pose_from_extrinsics(rvec: FloatArray, tvec: FloatArray) -> Pose3d:
    """Convert OpenCV field->optical extrinsics into a field-frame camera pose."""
    rotation, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).reshape(3, 1))
    translation = np.asarray(tvec, dtype=np.float64).reshape(3)
    field_rotation = rotation.T @ OPTICAL_FROM_CAMERA
    position = -rotation.T @ translation
    return Pose3d(
        x=float(position[0]),
        y=float(position[1]),
        z=float(position[2]),
        rotation=Rotation3d.from_matrix(field_rotation),
    )


def extrinsics_from_camera_pose(camera_pose: Pose3d) -> tuple[FloatArray, FloatArray]:
    """Inverse of :func:`camera_pose_from_extrinsics`: (rvec, tvec) for OpenCV."""
    rotation = OPTICAL_FROM_CAMERA @ camera_pose.rotation.matrix.T
    tvec = -rotation @ camera_pose.translation
    rvec, _ = cv2.Rodrigues(rotation)
    return rvec.reshape(3), tvec.reshape(3)


def to_optical_frame(field_points: FloatArray, camera_pose: Pose3d) -> FloatArray:
    """Express (N, 3) field points in the camera's optical frame."""
    rvec, tvec = extrinsics_from_camera_pose(camera_pose)
    rotation, _ = cv2.Rodrigues(rvec)
    pts = np.asarray(field_points, dtype=np.float64).reshape(-1, 3)
    return pts @ rotation.T + tvec


def project_points(field_points: FloatArray, camera_pose: Pose3d, camera: CameraInfo) -> FloatArray:
    """Project (N, 3) field points into (N, 2) pixel coordinates."""
    rvec, tvec = extrinsics_from_camera_pose(camera_pose)
    pixels, _ = cv2.projectPoints(
        np.array(field_points, dtype=np.float64).reshape(-1, 1, 3),
        rvec,
        tvec,
        camera.camera_matrix,
        camera.distortion,
    )
    return pixels.reshape(-1, 2)


def _reprojection_error(
    object_points: FloatArray,
    image_points: FloatArray,
    rvec: FloatArray,
    tvec: FloatArray,
    camera: CameraInfo,
) -> float:
    projected, _ = cv2.projectPoints(
        object_points.reshape(-1, 1, 3), rvec, tvec, camera.camera_matrix, camera.distortion
    )
    residual = projected.reshape(-1, 2) - image_points.reshape(-1, 2)
    return float(np.sqrt(np.mean(np.sum(residual**2, axis=1))))


def _hypothesis(camera_pose: Pose3d, error: float, camera: CameraInfo) -> PoseHypothesis:
    robot_pose = camera_pose.transform_by(camera.robot_to_camera.inverse())
    return PoseHypothesis(robot_pose=robot_pose, camera_pose=camera_pose, reprojection_error=error)


def solve_multi_tag(
    object_points: FloatArray,
    image_points: FloatArray,
    camera: CameraInfo,
) -> PoseHypothesis:
    """Solve one platform pose from the corners of two or more tags.

    Args:
        object_points: (N, 3) field-frame corner positions
        image_points: (N, 2) matching pixel positions
        camera: Camera intrinsics and mounting

    Returns:
        The unique pose hypothesis

    Raises:
        PoseSolveError: If OpenCV finds no finite solution
    """
    obj = np.ascontiguousarray(object_points, dtype=np.float64).reshape(-1, 3)
    img = np.ascontiguousarray(image_points, dtype=np.float64).reshape(-1, 2)
    if len(obj) < 4 or len(obj) != len(img):
        raise PoseSolveError(f"Need matching point sets of at least 4, got {len(obj)}/{len(img)}")

    try:
        ok, rvec, tvec = cv2.solvePnP(
            obj, img, camera.camera_matrix, camera.distortion, flags=cv2.SOLVEPNP_SQPNP
        )
    except cv2.error as e:
        raise PoseSolveError(f"Multi-tag solve failed: {e}") from e
    if not ok:
        raise PoseSolveError("Multi-tag solve found no solution")

    rvec, tvec = cv2.solvePnPRefineLM(
        obj, img, camera.camera_matrix, camera.distortion, rvec, tvec
    )
    error = _reprojection_error(obj, img, rvec, tvec, camera)
    hypothesis = _hypothesis(camera_pose_from_extrinsics(rvec, tvec), error, camera)
    if not (hypothesis.camera_pose.is_finite and math.isfinite(error)):
        raise PoseSolveError("Multi-tag solve returned a non-finite pose")
    return hypothesis


def solve_single_tag(
    tag_pose: Pose3d,
    tag_size: float,
    image_points: FloatArray,
    camera: CameraInfo,
) -> list[PoseHypothesis]:
    """Solve the (up to) two mirror-symmetric poses of a single planar tag.

    The solve runs in the tag's own plane, so the result does not depend on
    where the tag sits on the field.

    Args:
        tag_pose: Field pose of the tag
        tag_size: Tag edge length in meters
        image_points: (4, 2) pixel corners in observation order
        camera: Camera intrinsics and mounting

    Returns:
        Finite hypotheses sorted by ascending reprojection error

    Raises:
        PoseSolveError: If OpenCV finds no finite solution
    """
    obj = planar_tag_corners(tag_size)
    img = np.ascontiguousarray(image_points, dtype=np.float64).reshape(-1, 2)

    try:
        count, rvecs, tvecs, errors = cv2.solvePnPGeneric(
            obj, img, camera.camera_matrix, camera.distortion, flags=cv2.SOLVEPNP_IPPE
        )
    except cv2.error as e:
        raise PoseSolveError(f"Single-tag solve failed: {e}") from e
    if not count:
        raise PoseSolveError("Single-tag solve found no solution")

    plane_pose = tag_pose.transform_by(TAG_FROM_PLANE)
    error_values = np.asarray(errors, dtype=np.float64).reshape(-1)
    hypotheses = []
    for i in range(count):
        camera_in_plane = camera_pose_from_extrinsics(rvecs[i], tvecs[i])
        error = float(error_values[i])
        if not (camera_in_plane.is_finite and math.isfinite(error)):
            continue
        hypotheses.append(_hypothesis(plane_pose.transform_by(camera_in_plane), error, camera))

    if not hypotheses:
        raise PoseSolveError("Single-tag solve returned only non-finite poses")
    return sorted(hypotheses, key=lambda h: h.reprojection_error)


def tag_ambiguity(tag_size: float, image_points: FloatArray, camera: CameraInfo) -> float:
    """Ratio of best to alternate single-tag reprojection error.

    0 means unambiguous, 1 means both hypotheses explain the corners equally,
    -1 means the corners could not be solved.
    """
    try:
        hypotheses = solve_single_tag(Pose3d(), tag_size, image_points, camera)
    except PoseSolveError:
        return -1.0
    if len(hypotheses) < 2:
        return 0.0
    best, alternate = hypotheses[0].reprojection_error, hypotheses[1].reprojection_error
    if alternate <= 1e-12:
        return 1.0
    return best / alternate
