#!/usr/bin/env python3
"""Run a simulated multi-camera localization session.

Drives a platform around a circle, projects the field tags into two
simulated cameras and prints every observation forwarded to the
localization filter.
"""

from __future__ import annotations

import argparse
import math
import sys
from pathlib import Path

from vision_localizer.core.config import get_settings
from vision_localizer.core.exceptions import VisionLocalizerError
from vision_localizer.core.logging import get_logger, setup_logging
from vision_localizer.core.types import Alliance, CameraInfo, ConfidenceVector, HeadingSample
from vision_localizer.geometry import Pose2d, Pose3d, Rotation3d, wrap_angle
from vision_localizer.pipeline import (
    CameraFusionAggregator,
    LocalizationLoop,
    RecordingDiagnosticsSink,
)
from vision_localizer.vision import FieldTagLayout, SimulatedFrameSource, TagLayoutProvider

logger = get_logger(__name__)

FIELD_LENGTH = 16.54
FIELD_WIDTH = 8.05


def demo_layout(tag_size: float) -> FieldTagLayout:
    """Eight tags on the field perimeter, facing inward."""
    tags = {}
    for i, y in enumerate((2.0, 4.0, 6.0)):
        tags[i + 1] = Pose3d(0.0, y, 0.5, Rotation3d(yaw=0.0))
        tags[i + 4] = Pose3d(FIELD_LENGTH, y, 0.5, Rotation3d(yaw=math.pi))
    tags[7] = Pose3d(FIELD_LENGTH / 2, 0.0, 0.5, Rotation3d(yaw=math.pi / 2))
    tags[8] = Pose3d(FIELD_LENGTH / 2, FIELD_WIDTH, 0.5, Rotation3d(yaw=-math.pi / 2))
    return FieldTagLayout(tags, FIELD_LENGTH, FIELD_WIDTH, tag_size)


def demo_cameras() -> list[CameraInfo]:
    """A front and a rear camera, slightly pitched up."""
    return [
        CameraInfo(
            name="Front",
            robot_to_camera=Pose3d(0.3, 0.0, 0.25, Rotation3d(pitch=-0.2)),
        ),
        CameraInfo(
            name="Rear",
            robot_to_camera=Pose3d(-0.3, 0.0, 0.25, Rotation3d(pitch=-0.2, yaw=math.pi)),
        ),
    ]


class CircleDrive:
    """Ground-truth platform trajectory on a circle around the field center."""

    def __init__(self, radius: float, period_s: float, cycle_s: float) -> None:
        self.radius = radius
        self.period_s = period_s
        self.cycle_s = cycle_s
        self.time = 0.0

    def advance(self) -> None:
        self.time += self.cycle_s

    def pose(self) -> Pose2d:
        angle = 2 * math.pi * self.time / self.period_s
        return Pose2d(
            x=FIELD_LENGTH / 2 + self.radius * math.cos(angle),
            y=FIELD_WIDTH / 2 + self.radius * math.sin(angle),
            heading=angle + math.pi / 2,
        )

    def heading(self) -> HeadingSample:
        return HeadingSample(timestamp=self.time, heading=self.pose().heading)


def run_session(cycles: int, layout_path: Path | None, alliance: Alliance) -> int:
    """Run the simulated session.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    settings = get_settings()
    setup_logging(settings.logging.level, settings.logging.file)

    try:
        if layout_path is not None:
            layout = FieldTagLayout.from_json(layout_path, tag_size=settings.layout.tag_size_m)
        else:
            layout = demo_layout(settings.layout.tag_size_m)
    except VisionLocalizerError as e:
        logger.error("Could not load layout: %s", e)
        return 1

    drive = CircleDrive(radius=3.0, period_s=20.0, cycle_s=settings.simulation.cycle_period_s)
    observations: list[tuple[Pose2d, float, ConfidenceVector]] = []

    def consumer(pose: Pose2d, timestamp: float, confidence: ConfidenceVector) -> None:
        observations.append((pose, timestamp, confidence))
        truth = drive.pose()
        print(
            f"t={timestamp:7.3f}  est=({pose.x:6.2f}, {pose.y:6.2f}, {pose.heading:6.2f})  "
            f"true=({truth.x:6.2f}, {truth.y:6.2f})  "
            f"std=({confidence.x:.3f}, {confidence.y:.3f}, {confidence.theta:.3f})"
        )

    cameras = demo_cameras()
    diagnostics = RecordingDiagnosticsSink()
    aggregator = CameraFusionAggregator.from_cameras(
        cameras, TagLayoutProvider(layout), consumer, settings, diagnostics
    )
    sources = [
        SimulatedFrameSource(
            camera,
            layout,
            drive.pose,
            clock=lambda: drive.time,
            pixel_noise_std=settings.simulation.pixel_noise_std,
            seed=settings.simulation.seed + i,
        )
        for i, camera in enumerate(cameras)
    ]

    def heading_supplier() -> HeadingSample:
        drive.advance()
        sample = drive.heading()
        if alliance is Alliance.RED:
            # Gyro heading is reported in the alliance frame.
            return HeadingSample(sample.timestamp, wrap_angle(sample.heading + math.pi))
        return sample

    loop = LocalizationLoop(aggregator, sources, heading_supplier, lambda: alliance)
    loop.run(cycles)

    rejected = sum(not r.accepted for r in diagnostics.records)
    logger.info(
        "Forwarded %d observations, rejected %d camera-cycles",
        len(observations),
        rejected,
    )
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Simulate multi-camera tag localization")
    parser.add_argument(
        "--cycles",
        type=int,
        default=250,
        help="Number of control cycles to run",
    )
    parser.add_argument(
        "--layout",
        type=Path,
        default=None,
        help="WPILib AprilTag layout JSON (built-in demo layout if omitted)",
    )
    parser.add_argument(
        "--alliance",
        choices=[a.name.lower() for a in Alliance],
        default="blue",
        help="Alliance whose origin the estimates are reported in",
    )

    args = parser.parse_args()
    return run_session(args.cycles, args.layout, Alliance[args.alliance.upper()])


if __name__ == "__main__":
    sys.exit(main())
