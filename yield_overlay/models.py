"""Value types shared by the acquisition, mapping and rendering layers."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Tuple

# 0001-01-01T00:00:00 expressed in 100ns ticks relative to the Unix epoch.
DOTNET_EPOCH_OFFSET_TICKS = 621_355_968_000_000_000
TICKS_PER_MILLISECOND = 10_000
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ChangeSign(str, enum.Enum):
    POSITIVE = "+"
    NEGATIVE = "-"
    FLAT = "0"

    @classmethod
    def from_change(cls, change: float) -> "ChangeSign":
        if change > 0:
            return cls.POSITIVE
        if change < 0:
            return cls.NEGATIVE
        return cls.FLAT

    @property
    def is_negative(self) -> bool:
        return self is ChangeSign.NEGATIVE


@dataclass(frozen=True)
class Observation:
    """One upstream reading. Built fresh on every poll and never merged."""

    value: float
    change: float = 0.0
    label: str = ""
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = ""

    @property
    def change_sign(self) -> ChangeSign:
        return ChangeSign.from_change(self.change)


@dataclass(frozen=True)
class PixelPoint:
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class OverlayPoint:
    point: PixelPoint
    color: str
    tooltip: str


@dataclass(frozen=True)
class MarkerState:
    """Desired state of the live marker, independent of any display surface."""

    x: float
    y: float
    color: str
    tooltip: str = ""
    radius: float = 5.0
    stroke: str = "black"
    stroke_width: float = 1.0
    pulse_values: Tuple[float, ...] = (5.0, 7.0, 5.0)
    pulse_duration: float = 0.6


def to_dotnet_ticks(moment: datetime) -> int:
    """Convert *moment* into 100ns ticks since 0001-01-01 (the chart x-axis unit)."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    delta = moment - _UNIX_EPOCH
    unix_ms = (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
    return unix_ms * TICKS_PER_MILLISECOND + DOTNET_EPOCH_OFFSET_TICKS


def from_dotnet_ticks(ticks: float) -> datetime:
    unix_ms = (float(ticks) - DOTNET_EPOCH_OFFSET_TICKS) / TICKS_PER_MILLISECOND
    return _UNIX_EPOCH + timedelta(milliseconds=unix_ms)
