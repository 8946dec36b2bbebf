"""Live marker rendering: a surface-neutral state plus an SVG adapter."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Callable, Optional

from yield_overlay.chart_document import ChartDocument
from yield_overlay.models import MarkerState, PixelPoint

_LOGGER = logging.getLogger("YieldOverlay.Renderer")

MARKER_ATTRIBUTE = "data-live-dot"
DEFAULT_COLOR = "red"


def _format_number(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text if text not in {"", "-0"} else "0"


class MarkerSurfaceAdapter:
    """Applies a :class:`MarkerState` to a concrete display surface."""

    def apply(self, state: MarkerState) -> None: ...
    def clear(self) -> None: ...


class SvgMarkerAdapter(MarkerSurfaceAdapter):
    """Keeps exactly one ``<circle data-live-dot>`` inside a chart document."""

    def __init__(self, document: ChartDocument) -> None:
        self._document = document

    @property
    def document(self) -> ChartDocument:
        return self._document

    def find_marker(self) -> Optional[ET.Element]:
        for circle in self._document.iter_elements("circle"):
            if circle.get(MARKER_ATTRIBUTE) == "true":
                return circle
        return None

    def apply(self, state: MarkerState) -> None:
        qualify = self._document.qualify
        marker = self.find_marker()
        if marker is None:
            marker = ET.SubElement(self._document.root, qualify("circle"))
            marker.set(MARKER_ATTRIBUTE, "true")
        marker.set("r", _format_number(state.radius))
        marker.set("stroke", state.stroke)
        marker.set("stroke-width", _format_number(state.stroke_width))
        marker.set("fill", state.color or DEFAULT_COLOR)
        marker.set("cx", _format_number(state.x))
        marker.set("cy", _format_number(state.y))

        # Transient children are rebuilt on every update.
        for child in list(marker):
            if child.tag in {qualify("animate"), qualify("title")}:
                marker.remove(child)

        title = ET.SubElement(marker, qualify("title"))
        title.text = state.tooltip or ""

        if state.pulse_values:
            pulse = ET.SubElement(marker, qualify("animate"))
            pulse.set("attributeName", "r")
            pulse.set("values", ";".join(_format_number(value) for value in state.pulse_values))
            pulse.set("dur", f"{_format_number(state.pulse_duration)}s")
            pulse.set("repeatCount", "indefinite")
            pulse.set("fill", "freeze")

    def clear(self) -> None:
        marker = self.find_marker()
        if marker is not None:
            self._document.root.remove(marker)


class OverlayRenderer:
    """Owns the single live point shown on a chart."""

    def __init__(
        self,
        adapter: MarkerSurfaceAdapter,
        *,
        radius: float = 5.0,
        pulse_radius: float = 7.0,
        pulse_duration: float = 0.6,
        on_change: Optional[Callable[[MarkerState], None]] = None,
    ) -> None:
        self._adapter = adapter
        self._radius = radius
        self._pulse_radius = pulse_radius
        self._pulse_duration = pulse_duration
        self._on_change = on_change
        self._state: Optional[MarkerState] = None

    @property
    def state(self) -> Optional[MarkerState]:
        return self._state

    def describe(self, point: PixelPoint, color: str, tooltip: str) -> MarkerState:
        return MarkerState(
            x=point.x,
            y=point.y,
            color=color or DEFAULT_COLOR,
            tooltip=tooltip or "",
            radius=self._radius,
            pulse_values=(self._radius, self._pulse_radius, self._radius),
            pulse_duration=self._pulse_duration,
        )

    def apply(self, state: MarkerState) -> None:
        self._adapter.apply(state)
        self._state = state
        _LOGGER.debug("Live point moved to (%.2f, %.2f) colour=%s", state.x, state.y, state.color)
        if self._on_change is not None:
            self._on_change(state)

    def upsert(self, point: PixelPoint, color: str, tooltip: str) -> None:
        self.apply(self.describe(point, color, tooltip))

    def dispose(self) -> None:
        self._adapter.clear()
        self._state = None
