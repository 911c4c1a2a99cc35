"""Field tag layouts and alliance-dependent layout resolution."""

from __future__ import annotations

import json
import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import numpy as np
from numpy.typing import NDArray

from vision_localizer.core.config import LayoutSettings
from vision_localizer.core.exceptions import LayoutError
from vision_localizer.core.logging import get_logger
from vision_localizer.core.types import Alliance
from vision_localizer.geometry import Pose3d, Rotation3d

logger = get_logger(__name__)

DEFAULT_TAG_SIZE_M = 0.1651


def tag_corner_offsets(tag_size: float) -> NDArray[np.float64]:
    """Corner points in the tag frame (+x out of the tag face).

    Order matches ``TagObservation.corners``: bottom-left, bottom-right,
    top-right, top-left as seen by a camera facing the tag.
    """
    half = tag_size / 2.0
    return np.array(
        [
            [0.0, -half, -half],
            [0.0, half, -half],
            [0.0, half, half],
            [0.0, -half, half],
        ],
        dtype=np.float64,
    )


@dataclass(frozen=True)
class FieldTagLayout:
    """Known field poses of every fiducial tag.

    Attributes:
        tags: Mapping of fiducial id to tag pose in the field frame
        field_length: Field length along x in meters
        field_width: Field width along y in meters
        tag_size: Black-border edge length of each tag in meters
    """

    tags: Mapping[int, Pose3d]
    field_length: float
    field_width: float
    tag_size: float = DEFAULT_TAG_SIZE_M
    _corners: Mapping[int, NDArray[np.float64]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        offsets = tag_corner_offsets(self.tag_size)
        corners = {}
        for tag_id, pose in self.tags.items():
            points = pose.transform_points(offsets)
            points.flags.writeable = False
            corners[tag_id] = points
        object.__setattr__(self, "_corners", MappingProxyType(corners))

    def __hash__(self) -> int:
        return hash(
            (tuple(sorted(self.tags.items())), self.field_length, self.field_width, self.tag_size)
        )

    def __len__(self) -> int:
        return len(self.tags)

    def __contains__(self, fiducial_id: object) -> bool:
        return fiducial_id in self.tags

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self.tags))

    def pose_of(self, fiducial_id: int) -> Pose3d | None:
        """Field pose of a tag, or None if the id is not on this field."""
        return self.tags.get(fiducial_id)

    def corners_of(self, fiducial_id: int) -> NDArray[np.float64] | None:
        """Field-frame (4, 3) corner points of a tag, or None if unknown."""
        return self._corners.get(fiducial_id)

    def relative_to(self, origin: Pose3d) -> FieldTagLayout:
        """Copy of this layout with every tag expressed relative to ``origin``."""
        return FieldTagLayout(
            tags={tag_id: pose.relative_to(origin) for tag_id, pose in self.tags.items()},
            field_length=self.field_length,
            field_width=self.field_width,
            tag_size=self.tag_size,
        )

    def with_red_origin(self) -> FieldTagLayout:
        """Layout seen from the red alliance wall (field rotated half a turn)."""
        origin = Pose3d(
            x=self.field_length,
            y=self.field_width,
            z=0.0,
            rotation=Rotation3d(yaw=math.pi),
        )
        return self.relative_to(origin)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], tag_size: float = DEFAULT_TAG_SIZE_M
    ) -> FieldTagLayout:
        """Parse the WPILib AprilTag layout JSON structure.

        Raises:
            LayoutError: If required keys are missing or malformed
        """
        try:
            tags: dict[int, Pose3d] = {}
            for entry in data["tags"]:
                translation = entry["pose"]["translation"]
                quaternion = entry["pose"]["rotation"]["quaternion"]
                tags[int(entry["ID"])] = Pose3d(
                    x=float(translation["x"]),
                    y=float(translation["y"]),
                    z=float(translation["z"]),
                    rotation=Rotation3d.from_quaternion(
                        float(quaternion["W"]),
                        float(quaternion["X"]),
                        float(quaternion["Y"]),
                        float(quaternion["Z"]),
                    ),
                )
            return cls(
                tags=tags,
                field_length=float(data["field"]["length"]),
                field_width=float(data["field"]["width"]),
                tag_size=tag_size,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise LayoutError(f"Malformed tag layout: {e}") from e

    @classmethod
    def from_json(cls, path: Path, tag_size: float = DEFAULT_TAG_SIZE_M) -> FieldTagLayout:
        """Load a layout from a WPILib AprilTag layout JSON file.

        Raises:
            LayoutError: If the file cannot be read or parsed
        """
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise LayoutError(f"Failed to load tag layout from {path}: {e}") from e

        layout = cls.from_dict(data, tag_size=tag_size)
        logger.info("Loaded %d tags from %s", len(layout), path)
        return layout


class TagLayoutProvider:
    """Resolves the active tag layout for an alliance.

    Pure lookup: both variants are built once, ``resolve`` never mutates.
    Unknown alliance resolves to the blue layout.
    """

    def __init__(
        self,
        blue_layout: FieldTagLayout,
        red_layout: FieldTagLayout | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            blue_layout: Layout with the blue alliance wall as origin
            red_layout: Layout with the red alliance wall as origin
                (derived from ``blue_layout`` if None)
        """
        self.blue_layout = blue_layout
        self.red_layout = red_layout if red_layout is not None else blue_layout.with_red_origin()

    @classmethod
    def from_settings(cls, settings: LayoutSettings) -> TagLayoutProvider:
        """Build a provider from the configured layout file.

        Raises:
            LayoutError: If no layout path is configured or it cannot be loaded
        """
        if settings.path is None:
            raise LayoutError("No tag layout path configured (LAYOUT_PATH)")
        return cls(FieldTagLayout.from_json(Path(settings.path), tag_size=settings.tag_size_m))

    def resolve(self, alliance: Alliance | None) -> FieldTagLayout:
        """Layout for the given alliance; Blue when unknown or unset."""
        if alliance is Alliance.RED:
            return self.red_layout
        return self.blue_layout
