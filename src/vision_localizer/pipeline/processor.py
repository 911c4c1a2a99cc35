"""Control-cycle driver: poll sources, then run the aggregator."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from vision_localizer.core.exceptions import FrameSourceError
from vision_localizer.core.logging import get_logger
from vision_localizer.core.types import Alliance, CameraFrame, FusionResult, HeadingSample
from vision_localizer.pipeline.aggregator import CameraFusionAggregator
from vision_localizer.vision.sources import FrameSource

logger = get_logger(__name__)


class LocalizationLoop:
    """Runs one localization cycle per call to :meth:`step`.

    Coordinates:
    - Heading and alliance acquisition
    - Frame acquisition from every camera source
    - Per-camera estimation and forwarding (via the aggregator)
    """

    def __init__(
        self,
        aggregator: CameraFusionAggregator,
        sources: Sequence[FrameSource],
        heading_supplier: Callable[[], HeadingSample],
        alliance_supplier: Callable[[], Alliance | None] = lambda: Alliance.UNKNOWN,
    ) -> None:
        """Initialize loop.

        Args:
            aggregator: Multi-camera aggregator
            sources: One frame source per aggregator camera
            heading_supplier: Returns this cycle's heading sample
            alliance_supplier: Returns this cycle's alliance

        Raises:
            ValueError: If a source has no matching camera
        """
        unknown = {s.name for s in sources} - set(aggregator.camera_names)
        if unknown:
            raise ValueError(f"Sources without a matching camera: {sorted(unknown)}")

        self.aggregator = aggregator
        self.sources = list(sources)
        self._heading_supplier = heading_supplier
        self._alliance_supplier = alliance_supplier
        self._cycle_count = 0

    @property
    def cycle_count(self) -> int:
        """Number of completed cycles."""
        return self._cycle_count

    def _read_frames(self) -> dict[str, CameraFrame | None]:
        frames: dict[str, CameraFrame | None] = {}
        for source in self.sources:
            try:
                frames[source.name] = source.read()
            except FrameSourceError as e:
                logger.warning("No frame from %s this cycle: %s", source.name, e)
                frames[source.name] = None
        return frames

    def step(self) -> list[FusionResult]:
        """Run a single control cycle.

        Returns:
            One FusionResult per camera
        """
        heading = self._heading_supplier()
        alliance = self._alliance_supplier()
        frames = self._read_frames()
        results = self.aggregator.update(heading, alliance, frames)
        self._cycle_count += 1
        return results

    def run(
        self,
        cycles: int,
        period_s: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> list[list[FusionResult]]:
        """Run a fixed number of cycles at a fixed period.

        Args:
            cycles: Number of cycles to run
            period_s: Target cycle period (0 runs back to back)
            sleep: Sleep function, replaceable for simulation

        Returns:
            Per-cycle results
        """
        history: list[list[FusionResult]] = []
        for _ in range(cycles):
            start = time.perf_counter()
            history.append(self.step())
            remaining = period_s - (time.perf_counter() - start)
            if remaining > 0:
                sleep(remaining)

        valid = sum(r.is_valid for cycle in history for r in cycle)
        logger.info("Ran %d cycles, %d valid camera estimates", cycles, valid)
        return history
