import pytest

from yield_overlay.calibration import AxisCalibration, ChartCalibration
from yield_overlay.coordinate_mapper import get_logical_coordinates, map_value, unmap_value
from yield_overlay.models import PixelPoint

CALIBRATIONS = [
    AxisCalibration(0.0, 100.0, 0.0, 500.0),
    AxisCalibration(0.0, 10.0, 400.0, 0.0),
    AxisCalibration(-3.5, 12.25, 40.0, 760.0),
    AxisCalibration(6.38e17, 6.39e17, 55.0, 1210.0),
]


@pytest.mark.parametrize("calibration", CALIBRATIONS)
def test_domain_endpoints_map_to_range_endpoints(calibration):
    assert map_value(calibration.domain_min, calibration) == pytest.approx(calibration.range_min)
    assert map_value(calibration.domain_max, calibration) == pytest.approx(calibration.range_max)


@pytest.mark.parametrize("calibration", CALIBRATIONS)
def test_inverted_mapping_swaps_endpoints(calibration):
    assert map_value(calibration.domain_min, calibration, invert=True) == pytest.approx(calibration.range_max)
    assert map_value(calibration.domain_max, calibration, invert=True) == pytest.approx(calibration.range_min)


@pytest.mark.parametrize("calibration", CALIBRATIONS[:3])
@pytest.mark.parametrize("t", [-1.5, 0.0, 0.25, 1.0, 2.75])
def test_mapping_is_affine_including_extrapolation(calibration, t):
    a = calibration.domain_min + 0.1 * calibration.domain_span
    b = calibration.domain_max + 0.3 * calibration.domain_span
    expected = map_value(a, calibration) + t * (map_value(b, calibration) - map_value(a, calibration))
    assert map_value(a + t * (b - a), calibration) == pytest.approx(expected)


def test_values_outside_domain_are_not_clamped():
    calibration = AxisCalibration(0.0, 100.0, 0.0, 500.0)
    assert map_value(110.0, calibration) == pytest.approx(550.0)
    assert map_value(-10.0, calibration) == pytest.approx(-50.0)


@pytest.mark.parametrize("calibration", CALIBRATIONS[:3])
@pytest.mark.parametrize("invert", [False, True])
def test_unmap_recovers_original_value(calibration, invert):
    for value in (calibration.domain_min, 1.234, calibration.domain_max * 1.5):
        pixel = map_value(value, calibration, invert)
        assert unmap_value(pixel, calibration, invert) == pytest.approx(value)


def test_logical_coordinates_invert_y_only():
    calibration = ChartCalibration(
        x_axis=AxisCalibration(0.0, 100.0, 0.0, 500.0),
        y_axis=AxisCalibration(0.0, 10.0, 0.0, 400.0),
    )
    point = get_logical_coordinates(20.0, 2.5, calibration)
    assert isinstance(point, PixelPoint)
    assert point.x == pytest.approx(100.0)
    assert point.y == pytest.approx(300.0)


def test_logical_coordinates_unavailable_without_calibration():
    assert get_logical_coordinates(1.0, 2.0, None) is None
