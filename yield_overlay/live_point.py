"""Wire acquisition, translation and rendering for one loaded chart."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from yield_overlay.acquisition import AcquisitionPipeline
from yield_overlay.calibration import ChartCalibration
from yield_overlay.models import OverlayPoint
from yield_overlay.overlay_renderer import OverlayRenderer
from yield_overlay.poll_scheduler import PollScheduler, SleepFunc
from yield_overlay.translator import DEFAULT_PALETTE, MarkerPalette, to_overlay_point

_LOGGER = logging.getLogger("YieldOverlay.LivePoint")


class LivePointController:
    """Owns the polling loop that keeps one chart's live point current.

    The calibration is captured when the controller is built; loading another
    chart means disposing this controller and building a new one.
    """

    def __init__(
        self,
        calibration: Optional[ChartCalibration],
        pipeline: AcquisitionPipeline,
        render: Callable[[OverlayPoint], None],
        *,
        palette: MarkerPalette = DEFAULT_PALETTE,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._calibration = calibration
        self._pipeline = pipeline
        self._palette = palette
        self._clock = clock
        self._scheduler: PollScheduler[OverlayPoint] = PollScheduler(render, sleep=sleep, name=pipeline.series.key)

    @classmethod
    def for_renderer(
        cls,
        calibration: Optional[ChartCalibration],
        pipeline: AcquisitionPipeline,
        renderer: OverlayRenderer,
        **kwargs,
    ) -> "LivePointController":
        def _render(overlay: OverlayPoint) -> None:
            renderer.upsert(overlay.point, overlay.color, overlay.tooltip)

        return cls(calibration, pipeline, _render, **kwargs)

    @property
    def scheduler(self) -> PollScheduler[OverlayPoint]:
        return self._scheduler

    async def produce(self) -> Optional[OverlayPoint]:
        if self._calibration is None:
            _LOGGER.debug("No calibration loaded; skipping fetch")
            return None
        observation = await self._pipeline.fetch_observation()
        if observation is None:
            return None
        return to_overlay_point(observation, self._calibration, now=self._clock(), palette=self._palette)

    def start(self, interval_ms: float) -> "asyncio.Task[None]":
        return self._scheduler.start(self.produce, interval_ms)

    async def run(self, interval_ms: float, *, max_ticks: Optional[int] = None) -> None:
        await self._scheduler.run_forever(self.produce, interval_ms, max_ticks=max_ticks)

    def dispose(self) -> None:
        self._scheduler.stop()
        self._pipeline.close()
