"""Tests for the distance-based confidence heuristic."""

from __future__ import annotations

import math

import pytest

from vision_localizer.core.config import ConfidenceSettings
from vision_localizer.core.types import CameraInfo, ConfidenceVector
from vision_localizer.estimation.confidence import (
    ConfidenceParameters,
    average_tag_distance,
    compute_confidence,
    distance_scale,
)
from vision_localizer.geometry import Pose2d, Pose3d

SINGLE = (1.0, 1.0, 2.0)
MULTI = (0.5, 0.5, 1.0)


@pytest.fixture
def params() -> ConfidenceParameters:
    return ConfidenceParameters(single_tag_std_devs=SINGLE, multi_tag_std_devs=MULTI)


def _expected(baseline: tuple[float, float, float], avg_dist: float) -> tuple[float, ...]:
    factor = 1 + avg_dist**2 / 30
    return tuple(b * factor for b in baseline)


class TestComputeConfidence:
    """Tests for compute_confidence."""

    def test_no_tags_is_rejected(self, params: ConfidenceParameters) -> None:
        """Zero tags should give the rejected sentinel."""
        result = compute_confidence(Pose2d(1.0, 1.0), [], params)
        assert result == ConfidenceVector.rejected()
        assert not result.is_finite

    def test_two_tags_scenario(self, params: ConfidenceParameters) -> None:
        """Tags at (5,5) and (5,3) seen from (5,4) scale the multi-tag baseline by 1+1/30."""
        result = compute_confidence(Pose2d(5.0, 4.0), [(5.0, 5.0), (5.0, 3.0)], params)

        assert result.as_tuple() == pytest.approx(tuple(m * (1 + 1 / 30) for m in MULTI))
        assert result.x == pytest.approx(0.5 * 1.0333333, rel=1e-6)

    def test_single_tag_within_range(self, params: ConfidenceParameters) -> None:
        """A single tag within the reject distance scales the single-tag baseline."""
        result = compute_confidence(Pose2d(0.0, 0.0), [(3.0, 0.0)], params)
        assert result.as_tuple() == pytest.approx(_expected(SINGLE, 3.0))

    def test_single_tag_at_threshold_is_kept(self, params: ConfidenceParameters) -> None:
        """Exactly the reject distance is still accepted."""
        result = compute_confidence(Pose2d(0.0, 0.0), [(4.0, 0.0)], params)
        assert result.is_finite
        assert result.as_tuple() == pytest.approx(_expected(SINGLE, 4.0))

    def test_single_distant_tag_is_rejected(self, params: ConfidenceParameters) -> None:
        """A lone tag 5.2 m away is rejected regardless of baseline."""
        result = compute_confidence(Pose2d(0.0, 0.0), [(5.2, 0.0)], params)
        assert result == ConfidenceVector.rejected()

        tiny = ConfidenceParameters((1e-6, 1e-6, 1e-6), MULTI)
        rejected = compute_confidence(Pose2d(0.0, 0.0), [(5.2, 0.0)], tiny)
        assert rejected == ConfidenceVector.rejected()

    def test_distant_multi_tag_is_not_rejected(self, params: ConfidenceParameters) -> None:
        """The distance rejection applies to single tags only."""
        result = compute_confidence(Pose2d(0.0, 0.0), [(6.0, 1.0), (6.0, -1.0)], params)
        assert result.is_finite

    @pytest.mark.parametrize("tags", [[(0.0, 0.0)], [(0.0, 0.5), (0.0, -0.5)]])
    def test_monotonic_in_distance(
        self, params: ConfidenceParameters, tags: list[tuple[float, float]]
    ) -> None:
        """Magnitude never decreases as the platform moves away (0..4 m)."""
        previous = None
        for dist in (0.0, 1.0, 2.0, 3.0, 4.0):
            result = compute_confidence(Pose2d(dist, 0.0), tags, params)
            if previous is not None:
                assert result.x >= previous.x
                assert result.y >= previous.y
                assert result.theta >= previous.theta
            previous = result

    def test_zero_distance_equals_baseline(self, params: ConfidenceParameters) -> None:
        """At zero distance the multiplier is exactly 1."""
        result = compute_confidence(Pose2d(1.0, 1.0), [(1.0, 1.0)], params)
        assert result.as_tuple() == SINGLE

    def test_divisor_is_configurable(self) -> None:
        """A larger divisor damps the distance scaling."""
        damped = ConfidenceParameters(SINGLE, MULTI, distance_scale_divisor=60.0)
        result = compute_confidence(Pose2d(0.0, 0.0), [(2.0, 0.0)], damped)
        assert result.x == pytest.approx(1.0 + 4.0 / 60.0)


class TestHelpers:
    """Tests for distance helpers."""

    def test_average_distance(self) -> None:
        """Should average planar distances."""
        assert average_tag_distance(Pose2d(0.0, 0.0), [(3.0, 4.0), (1.0, 0.0)]) == 3.0

    def test_average_distance_empty(self) -> None:
        """Empty input should give zero."""
        assert average_tag_distance(Pose2d(0.0, 0.0), []) == 0.0

    def test_distance_scale(self) -> None:
        """Should follow 1 + d^2 / divisor."""
        assert distance_scale(3.0, 30.0) == pytest.approx(1.3)


class TestConfidenceParameters:
    """Tests for per-camera parameter resolution."""

    def test_uses_global_settings(self) -> None:
        """Without overrides the global settings apply."""
        settings = ConfidenceSettings()
        params = ConfidenceParameters.for_camera(settings)

        assert params.single_tag_std_devs == settings.single_tag_std_devs
        assert params.multi_tag_std_devs == settings.multi_tag_std_devs
        assert params.reject_distance == 4.0
        assert params.distance_scale_divisor == 30.0

    def test_camera_overrides(self) -> None:
        """Camera overrides replace the global values."""
        camera = CameraInfo(
            name="Side",
            robot_to_camera=Pose3d(),
            single_tag_std_devs=(2.0, 2.0, 4.0),
            reject_distance=6.0,
        )
        params = ConfidenceParameters.for_camera(ConfidenceSettings(), camera)

        assert params.single_tag_std_devs == (2.0, 2.0, 4.0)
        assert params.reject_distance == 6.0
        assert params.multi_tag_std_devs == ConfidenceSettings().multi_tag_std_devs


class TestConfidenceVector:
    """Tests for the ConfidenceVector type."""

    def test_negative_component_raises(self) -> None:
        """Components must be non-negative."""
        with pytest.raises(ValueError):
            ConfidenceVector(-0.1, 0.0, 0.0)

    @pytest.mark.parametrize("value", [math.nan, math.inf])
    def test_non_finite_component_raises(self, value: float) -> None:
        """NaN and infinite components are refused."""
        with pytest.raises(ValueError):
            ConfidenceVector(value, 1.0, 1.0)
        with pytest.raises(ValueError):
            ConfidenceVector(1.0, 1.0, value)

    def test_rejected_uses_max_float(self) -> None:
        """Sentinel uses the maximum representable float."""
        import sys

        assert ConfidenceVector.rejected().as_tuple() == (sys.float_info.max,) * 3

    def test_scaled(self) -> None:
        """Scaling is component-wise."""
        assert ConfidenceVector(1.0, 2.0, 3.0).scaled(2.0).as_tuple() == (2.0, 4.0, 6.0)
