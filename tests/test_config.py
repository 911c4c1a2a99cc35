"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from vision_localizer.core.config import (
    ConfidenceSettings,
    EstimatorSettings,
    LayoutSettings,
    Settings,
    SimulationSettings,
)
from vision_localizer.core.types import PoseStrategy


class TestDefaults:
    """Tests for default values."""

    def test_confidence_defaults(self) -> None:
        """Defaults match the tuned field values."""
        settings = ConfidenceSettings()
        assert settings.single_tag_std_devs == (0.9, 0.9, 1.8)
        assert settings.multi_tag_std_devs == (0.3, 0.3, 0.6)
        assert settings.reject_distance == 4.0
        assert settings.distance_scale_divisor == 30.0

    def test_estimator_defaults(self) -> None:
        """Multi-tag PnP is the default strategy."""
        settings = EstimatorSettings()
        assert settings.primary_strategy is PoseStrategy.MULTI_TAG_PNP
        assert settings.heading_buffer_seconds == 1.0

    def test_root_sections(self) -> None:
        """Root settings carry every section."""
        settings = Settings()
        assert isinstance(settings.layout, LayoutSettings)
        assert isinstance(settings.simulation, SimulationSettings)
        assert settings.simulation.cycle_period_s == 0.02


class TestEnvironment:
    """Tests for environment overrides."""

    def test_confidence_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """CONFIDENCE_* variables override the defaults."""
        monkeypatch.setenv("CONFIDENCE_REJECT_DISTANCE", "5.5")
        monkeypatch.setenv("CONFIDENCE_SINGLE_TAG_STD_DEVS", "[1.0, 1.0, 2.0]")

        settings = ConfidenceSettings()
        assert settings.reject_distance == 5.5
        assert settings.single_tag_std_devs == (1.0, 1.0, 2.0)

    def test_strategy_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Strategies are read by value."""
        monkeypatch.setenv("ESTIMATOR_PRIMARY_STRATEGY", "lowest_ambiguity")
        assert EstimatorSettings().primary_strategy is PoseStrategy.LOWEST_AMBIGUITY

    def test_layout_path_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """LAYOUT_PATH selects the layout file."""
        monkeypatch.setenv("LAYOUT_PATH", "/tmp/field.json")
        assert LayoutSettings().path == "/tmp/field.json"


class TestValidation:
    """Tests for rejected values."""

    def test_negative_std_devs(self) -> None:
        """Standard deviations must be non-negative."""
        with pytest.raises(ValidationError):
            ConfidenceSettings(single_tag_std_devs=(-1.0, 1.0, 1.0))

    def test_non_positive_divisor(self) -> None:
        """The distance divisor must be positive."""
        with pytest.raises(ValidationError):
            ConfidenceSettings(distance_scale_divisor=0.0)

    def test_negative_reject_distance(self) -> None:
        """The reject distance cannot be negative."""
        with pytest.raises(ValidationError):
            ConfidenceSettings(reject_distance=-1.0)

    def test_non_positive_heading_window(self) -> None:
        """The heading window must be positive."""
        with pytest.raises(ValidationError):
            EstimatorSettings(heading_buffer_seconds=0.0)
