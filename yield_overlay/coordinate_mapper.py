"""Affine domain-to-pixel mapping driven by chart calibration."""
from __future__ import annotations

from typing import Optional

from yield_overlay.calibration import AxisCalibration, ChartCalibration
from yield_overlay.models import PixelPoint


def map_value(value: float, calibration: AxisCalibration, invert: bool = False) -> float:
    """Map a domain *value* to pixel space.

    No clamping is applied: values outside the calibrated domain extrapolate
    linearly, so a live point just past the last plotted sample still lands on
    the correct side of the chart.
    """

    ratio = (value - calibration.domain_min) / calibration.domain_span
    if invert:
        ratio = 1.0 - ratio
    return calibration.range_min + ratio * calibration.range_span


def unmap_value(pixel: float, calibration: AxisCalibration, invert: bool = False) -> float:
    """Inverse of :func:`map_value` for the same calibration and orientation."""

    if calibration.range_span == 0:
        raise ValueError("range_min and range_max must differ to invert a mapping")
    ratio = (pixel - calibration.range_min) / calibration.range_span
    if invert:
        ratio = 1.0 - ratio
    return calibration.domain_min + ratio * calibration.domain_span


def get_logical_coordinates(
    domain_x: float,
    domain_y: float,
    calibration: Optional[ChartCalibration],
) -> Optional[PixelPoint]:
    """Map a domain pair to a pixel point; ``None`` when no calibration is loaded.

    Pixel Y grows downward while value Y grows upward, so the y-axis is always
    inverted.
    """

    if calibration is None:
        return None
    return PixelPoint(
        x=map_value(domain_x, calibration.x_axis, invert=False),
        y=map_value(domain_y, calibration.y_axis, invert=True),
    )
