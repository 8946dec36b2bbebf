"""Turn an observation into a coloured pixel point on the loaded chart."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from yield_overlay.calibration import ChartCalibration
from yield_overlay.coordinate_mapper import get_logical_coordinates
from yield_overlay.models import Observation, OverlayPoint, to_dotnet_ticks


@dataclass(frozen=True)
class MarkerPalette:
    # Rising yields are drawn in the warning colour.
    non_negative: str = "crimson"
    negative: str = "limegreen"

    def color_for(self, observation: Observation) -> str:
        # A flat day shares the rising colour.
        return self.negative if observation.change_sign.is_negative else self.non_negative


DEFAULT_PALETTE = MarkerPalette()


def to_overlay_point(
    observation: Observation,
    calibration: Optional[ChartCalibration],
    *,
    now: Optional[datetime] = None,
    palette: MarkerPalette = DEFAULT_PALETTE,
) -> Optional[OverlayPoint]:
    """Place *observation* at the current wall-clock time; ``None`` without calibration."""

    moment = now or datetime.now(timezone.utc)
    point = get_logical_coordinates(float(to_dotnet_ticks(moment)), observation.value, calibration)
    if point is None:
        return None
    return OverlayPoint(point=point, color=palette.color_for(observation), tooltip=observation.label)
