"""Percentage and time-remaining estimates for a conversion job."""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .constants import ProgressBands, SystemDefaults

# Sentinel for "remaining time cannot be estimated yet"
UNKNOWN_ETA = None


@dataclass(frozen=True)
class ProgressSnapshot:
    """One derived progress reading."""

    percent: int
    eta: Optional[float]
    completed: int
    total: int


def download_percent(completed: int, total: int) -> int:
    """Map download completion onto the download band of the progress bar.

    The first and last few percent are reserved for copying overrides
    and for sealing the archive.
    """
    if total <= 0:
        return ProgressBands.DOWNLOAD_END
    fraction = min(max(completed / total, 0.0), 1.0)
    span = ProgressBands.DOWNLOAD_END - ProgressBands.DOWNLOAD_START
    return clamp_percent(round(ProgressBands.DOWNLOAD_START + fraction * span))


def clamp_percent(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return int(min(max(value, 0), 100))


def format_eta(eta: Optional[float]) -> str:
    """Render an ETA as M:SS or H:MM:SS, or 'unknown'."""
    if eta is UNKNOWN_ETA or not math.isfinite(eta) or eta < 0:
        return "unknown"
    seconds = int(round(eta))
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


class ProgressEstimator:
    """Turns (completed, total, timestamp) samples into percent and ETA.

    The rate is the cumulative average ``completed / elapsed`` and the
    resulting ETA is smoothed with an exponential moving average so a
    single slow file does not make the estimate jump around. Percent
    readings never go backwards.
    """

    def __init__(
        self,
        total: int,
        started_at: Optional[float] = None,
        smoothing: float = SystemDefaults.ETA_SMOOTHING,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.clock = clock
        self.started_at = clock() if started_at is None else started_at
        self.smoothing = smoothing
        self._eta: Optional[float] = UNKNOWN_ETA
        self._percent = 0

    @property
    def percent(self) -> int:
        return self._percent

    @property
    def eta(self) -> Optional[float]:
        return self._eta

    def _advance(self, percent: int) -> int:
        self._percent = max(self._percent, clamp_percent(percent))
        return self._percent

    def estimate_eta(self, completed: int, total: int, timestamp: float) -> Optional[float]:
        """Raw (unsmoothed) seconds remaining, or UNKNOWN_ETA."""
        if completed <= 0:
            return UNKNOWN_ETA
        remaining = total - completed
        if remaining <= 0:
            return 0.0
        elapsed = timestamp - self.started_at
        if elapsed <= 0:
            return UNKNOWN_ETA
        rate = completed / elapsed
        if not math.isfinite(rate) or rate <= 0:
            return UNKNOWN_ETA
        eta = remaining / rate
        if not math.isfinite(eta) or eta < 0:
            return UNKNOWN_ETA
        return eta

    def sample(
        self, completed: int, total: Optional[int] = None, timestamp: Optional[float] = None
    ) -> ProgressSnapshot:
        """Record a download tick and return the derived reading."""
        total = self.total if total is None else total
        timestamp = self.clock() if timestamp is None else timestamp

        raw = self.estimate_eta(completed, total, timestamp)
        if raw is UNKNOWN_ETA:
            self._eta = UNKNOWN_ETA
        elif raw == 0.0 or self._eta is UNKNOWN_ETA:
            self._eta = raw
        else:
            self._eta = self.smoothing * raw + (1 - self.smoothing) * self._eta

        percent = self._advance(download_percent(completed, total))
        return ProgressSnapshot(
            percent=percent, eta=self._eta, completed=completed, total=total
        )

    def overrides_done(self) -> int:
        return self._advance(ProgressBands.OVERRIDES)

    def finalizing(self) -> int:
        return self._advance(ProgressBands.DOWNLOAD_END)

    def done(self) -> int:
        return self._advance(ProgressBands.DONE)
