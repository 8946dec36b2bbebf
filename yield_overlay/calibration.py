"""Parse per-axis calibration descriptors embedded in chart metadata."""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

_LOGGER = logging.getLogger("YieldOverlay.Calibration")

X_AXIS_ATTRIBUTE = "xlm"
Y_AXIS_ATTRIBUTE = "ylm"


@dataclass(frozen=True)
class AxisCalibration:
    """Affine parameters mapping ``[domain_min, domain_max]`` onto ``[range_min, range_max]``."""

    domain_min: float
    domain_max: float
    range_min: float
    range_max: float

    def __post_init__(self) -> None:
        for name in ("domain_min", "domain_max", "range_min", "range_max"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if self.domain_max == self.domain_min:
            raise ValueError("domain_min and domain_max must differ")

    @property
    def domain_span(self) -> float:
        return self.domain_max - self.domain_min

    @property
    def range_span(self) -> float:
        return self.range_max - self.range_min


@dataclass(frozen=True)
class ChartCalibration:
    x_axis: AxisCalibration
    y_axis: AxisCalibration


def _reject_constant(token: str) -> Any:
    raise ValueError(f"non-finite constant {token!r}")


def _coerce_entry(entry: Any) -> float:
    if isinstance(entry, bool):
        raise ValueError("boolean entry")
    if isinstance(entry, (int, float)):
        return float(entry)
    if isinstance(entry, str):
        return float(entry.strip())
    raise ValueError(f"unsupported entry {entry!r}")


def parse_axis_descriptor(descriptor: Optional[str]) -> Optional[AxisCalibration]:
    """Return the calibration encoded in *descriptor*, or ``None`` when unusable.

    The descriptor is a JSON-style list of exactly four numbers
    ``[domain_min, domain_max, range_min, range_max]``; both ``1e5`` and ``1E+5``
    exponent forms are accepted. Failures are logged, never raised.
    """

    if descriptor is None:
        _LOGGER.warning("Calibration descriptor missing")
        return None
    text = str(descriptor).strip()
    if not text:
        _LOGGER.warning("Calibration descriptor is empty")
        return None
    try:
        values = json.loads(text, parse_constant=_reject_constant)
    except ValueError as exc:
        _LOGGER.warning("Invalid calibration descriptor %r: %s", text, exc)
        return None
    if not isinstance(values, list) or len(values) != 4:
        _LOGGER.warning("Invalid calibration descriptor %r: expected 4 numbers", text)
        return None
    try:
        numbers = [_coerce_entry(entry) for entry in values]
        return AxisCalibration(*numbers)
    except (TypeError, ValueError) as exc:
        _LOGGER.warning("Invalid calibration descriptor %r: %s", text, exc)
        return None


def parse_chart_calibration(attributes: Mapping[str, str]) -> Optional[ChartCalibration]:
    """Build a chart calibration from root element attributes (``xlm``/``ylm``)."""

    x_axis = parse_axis_descriptor(attributes.get(X_AXIS_ATTRIBUTE))
    y_axis = parse_axis_descriptor(attributes.get(Y_AXIS_ATTRIBUTE))
    if x_axis is None or y_axis is None:
        return None
    return ChartCalibration(x_axis=x_axis, y_axis=y_axis)
