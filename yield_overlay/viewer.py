"""PyQt6 display surface for a calibrated chart with a live point."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

from PyQt6.QtCore import QByteArray, QObject, Qt, pyqtSignal
from PyQt6.QtGui import QCloseEvent
from PyQt6.QtSvgWidgets import QSvgWidget
from PyQt6.QtWidgets import QLabel, QVBoxLayout, QWidget

from yield_overlay.acquisition import AcquisitionPipeline
from yield_overlay.calibration import ChartCalibration
from yield_overlay.chart_document import ChartDocument
from yield_overlay.errors import ChartLoadError
from yield_overlay.live_point import LivePointController
from yield_overlay.models import OverlayPoint
from yield_overlay.overlay_renderer import OverlayRenderer, SvgMarkerAdapter
from yield_overlay.translator import DEFAULT_PALETTE, MarkerPalette

_LOGGER = logging.getLogger("YieldOverlay.Viewer")

PipelineFactory = Callable[[], AcquisitionPipeline]


class LivePointWorker(QObject):
    """Runs the polling loop on a background asyncio thread and forwards results to Qt."""

    point_ready = pyqtSignal(object)
    status_changed = pyqtSignal(str)

    def __init__(
        self,
        calibration: Optional[ChartCalibration],
        pipeline: AcquisitionPipeline,
        interval_ms: float,
        *,
        palette: MarkerPalette = DEFAULT_PALETTE,
    ) -> None:
        super().__init__()
        self._calibration = calibration
        self._pipeline = pipeline
        self._interval_ms = interval_ms
        self._palette = palette
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        # The task exists before the thread starts so stop() can always cancel it.
        loop = asyncio.new_event_loop()
        self._loop = loop
        self._task = loop.create_task(self._run())
        self._thread = threading.Thread(target=self._thread_main, args=(loop, self._task), name="YieldOverlay-Poll", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        loop = self._loop
        task = self._task
        if loop is not None and task is not None and not loop.is_closed():
            loop.call_soon_threadsafe(task.cancel)
        if self._thread:
            self._thread.join(timeout=5.0)
        self._pipeline.close()
        self._thread = None
        self._loop = None
        self._task = None

    # Background thread ----------------------------------------------------

    @staticmethod
    def _thread_main(loop: asyncio.AbstractEventLoop, task: "asyncio.Task[None]") -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(task)
        except asyncio.CancelledError:
            _LOGGER.debug("Polling thread cancelled")
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    def _emit_point(self, overlay: OverlayPoint) -> None:
        self.point_ready.emit(overlay)

    async def _run(self) -> None:
        controller = LivePointController(self._calibration, self._pipeline, self._emit_point, palette=self._palette)
        self.status_changed.emit(f"Polling {self._pipeline.series.label_prefix} every {self._interval_ms / 1000:.0f}s")
        try:
            await controller.run(self._interval_ms)
        finally:
            controller.dispose()


class ChartViewerWindow(QWidget):
    """Shows one chart document; replaces it (and its poller) on every load."""

    def __init__(
        self,
        pipeline_factory: PipelineFactory,
        interval_ms: float,
        *,
        palette: MarkerPalette = DEFAULT_PALETTE,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._pipeline_factory = pipeline_factory
        self._interval_ms = interval_ms
        self._palette = palette
        self._document: Optional[ChartDocument] = None
        self._renderer: Optional[OverlayRenderer] = None
        self._worker: Optional[LivePointWorker] = None

        self._svg = QSvgWidget(self)
        self._placeholder = QLabel("Viewer initialized.", self)
        self._placeholder.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._status = QLabel("", self)
        layout = QVBoxLayout(self)
        layout.addWidget(self._svg, 1)
        layout.addWidget(self._placeholder, 1)
        layout.addWidget(self._status)
        self._svg.hide()
        self.setWindowTitle("Yield overlay")

    @property
    def document(self) -> Optional[ChartDocument]:
        return self._document

    @property
    def placeholder_text(self) -> str:
        return self._placeholder.text()

    def load_chart(self, location: str) -> bool:
        try:
            document = ChartDocument.load(location)
        except ChartLoadError as exc:
            _LOGGER.error("%s", exc)
            self._dispose_worker()
            self._document = None
            self._renderer = None
            self.show_placeholder(f"Failed to load SVG from {location}.")
            return False
        self.show_document(document)
        return True

    def show_document(self, document: ChartDocument) -> None:
        self._dispose_worker()
        self._document = document
        self._renderer = OverlayRenderer(SvgMarkerAdapter(document))
        self._refresh()
        worker = LivePointWorker(document.calibration, self._pipeline_factory(), self._interval_ms, palette=self._palette)
        worker.point_ready.connect(lambda overlay, source=worker: self._apply_point(source, overlay))
        worker.status_changed.connect(self._status.setText)
        self._worker = worker
        worker.start()

    def show_placeholder(self, text: str) -> None:
        self._placeholder.setText(text)
        self._svg.hide()
        self._placeholder.show()

    def _apply_point(self, source: LivePointWorker, overlay: OverlayPoint) -> None:
        # Results queued by a worker from a previous chart are dropped.
        if source is not self._worker or self._renderer is None:
            return
        self._renderer.upsert(overlay.point, overlay.color, overlay.tooltip)
        self._svg.setToolTip(overlay.tooltip)
        self._refresh()

    def _refresh(self) -> None:
        if self._document is None:
            return
        self._svg.load(QByteArray(self._document.to_bytes()))
        self._placeholder.hide()
        self._svg.show()

    def _dispose_worker(self) -> None:
        if self._worker is not None:
            self._worker.stop()
            self._worker = None

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        self._dispose_worker()
        super().closeEvent(event)
