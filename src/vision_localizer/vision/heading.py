"""Rolling buffer of platform heading samples."""

from __future__ import annotations

import bisect
from collections import deque

from vision_localizer.core.types import HeadingSample
from vision_localizer.geometry import wrap_angle


class HeadingBuffer:
    """Time-indexed heading history with interpolation.

    Keeps ``history_seconds`` of samples behind the newest one. Used only to
    disambiguate single-tag pose hypotheses.
    """

    def __init__(self, history_seconds: float = 1.0) -> None:
        """Initialize heading buffer.

        Args:
            history_seconds: Span of history kept behind the newest sample
        """
        if history_seconds <= 0:
            raise ValueError("history_seconds must be positive")
        self.history_seconds = history_seconds
        self._times: deque[float] = deque()
        self._headings: deque[float] = deque()

    def __len__(self) -> int:
        return len(self._times)

    @property
    def latest(self) -> HeadingSample | None:
        """Most recent sample."""
        if not self._times:
            return None
        return HeadingSample(self._times[-1], self._headings[-1])

    def clear(self) -> None:
        """Drop all samples."""
        self._times.clear()
        self._headings.clear()

    def add(self, timestamp: float, heading: float) -> None:
        """Insert a sample and prune history older than the window.

        A sample with an existing timestamp replaces the old heading.
        """
        idx = bisect.bisect_left(self._times, timestamp)
        if idx < len(self._times) and self._times[idx] == timestamp:
            self._headings[idx] = heading
        else:
            self._times.insert(idx, timestamp)
            self._headings.insert(idx, heading)

        cutoff = self._times[-1] - self.history_seconds
        while self._times and self._times[0] < cutoff:
            self._times.popleft()
            self._headings.popleft()

    def sample(self, timestamp: float) -> float | None:
        """Heading at ``timestamp``.

        Interpolates along the shortest arc between neighbouring samples and
        clamps to the oldest/newest sample outside the buffered span.

        Returns:
            Heading in radians, or None if the buffer is empty
        """
        if not self._times:
            return None
        if timestamp <= self._times[0]:
            return self._headings[0]
        if timestamp >= self._times[-1]:
            return self._headings[-1]

        hi = bisect.bisect_right(self._times, timestamp)
        lo = hi - 1
        t0, t1 = self._times[lo], self._times[hi]
        h0, h1 = self._headings[lo], self._headings[hi]
        fraction = (timestamp - t0) / (t1 - t0)
        return wrap_angle(h0 + wrap_angle(h1 - h0) * fraction)
