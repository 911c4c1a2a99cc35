"""Application configuration via Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vision_localizer.core.types import PoseStrategy

StdDevs = tuple[float, float, float]


class ConfidenceSettings(BaseSettings):
    """Standard-deviation heuristic parameters.

    Baselines are (x, y, heading) measurement standard deviations, scaled by
    ``1 + avg_dist**2 / distance_scale_divisor`` at estimation time.
    """

    model_config = SettingsConfigDict(env_prefix="CONFIDENCE_")

    single_tag_std_devs: StdDevs = (0.9, 0.9, 1.8)
    multi_tag_std_devs: StdDevs = (0.3, 0.3, 0.6)
    reject_distance: float = Field(default=4.0, ge=0.0)
    distance_scale_divisor: float = Field(default=30.0, gt=0.0)

    @field_validator("single_tag_std_devs", "multi_tag_std_devs")
    @classmethod
    def _non_negative(cls, value: StdDevs) -> StdDevs:
        if any(component < 0 for component in value):
            raise ValueError("standard deviations must be non-negative")
        return value


class EstimatorSettings(BaseSettings):
    """Per-camera pose estimator settings."""

    model_config = SettingsConfigDict(env_prefix="ESTIMATOR_")

    primary_strategy: PoseStrategy = PoseStrategy.MULTI_TAG_PNP
    heading_buffer_seconds: float = Field(default=1.0, gt=0.0)


class LayoutSettings(BaseSettings):
    """Field tag layout source."""

    model_config = SettingsConfigDict(env_prefix="LAYOUT_")

    path: str | None = None
    tag_size_m: float = Field(default=0.1651, gt=0.0)


class SimulationSettings(BaseSettings):
    """Simulated camera settings."""

    model_config = SettingsConfigDict(env_prefix="SIM_")

    pixel_noise_std: float = Field(default=0.0, ge=0.0)
    seed: int = 0
    cycle_period_s: float = Field(default=0.02, gt=0.0)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = "INFO"
    file: str | None = None


class Settings(BaseSettings):
    """Root settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    confidence: ConfidenceSettings = Field(default_factory=ConfidenceSettings)
    estimator: EstimatorSettings = Field(default_factory=EstimatorSettings)
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings instance."""
    return Settings()
