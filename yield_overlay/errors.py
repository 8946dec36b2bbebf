"""Exception types raised inside the overlay core.

Acquisition errors never escape :class:`~yield_overlay.acquisition.AcquisitionPipeline`;
they are logged and converted to ``None`` so a polling loop keeps running.
"""
from __future__ import annotations

from typing import Sequence


class OverlayError(Exception):
    """Base class for overlay failures."""


class CalibrationUnavailable(OverlayError):
    """The chart carries no usable xlm/ylm calibration."""


class ChartLoadError(OverlayError):
    """The chart document could not be read or is not an SVG."""


class AcquisitionError(OverlayError):
    """A single observation fetch failed."""


class TransportFailure(AcquisitionError):
    """One transport route failed or timed out."""

    def __init__(self, route: str, reason: str) -> None:
        super().__init__(f"{route}: {reason}")
        self.route = route
        self.reason = reason


class AllRoutesExhausted(AcquisitionError):
    def __init__(self, failures: Sequence[TransportFailure]) -> None:
        summary = "; ".join(str(item) for item in failures) or "no routes configured"
        super().__init__(f"All transport routes failed ({summary})")
        self.failures = list(failures)


class ParseFailure(AcquisitionError):
    """No parse strategy matched, or the value field was unusable."""
