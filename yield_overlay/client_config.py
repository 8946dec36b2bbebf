"""Configuration helpers for the yield overlay."""
from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from yield_overlay.series import DEFAULT_SERIES, SERIES, SeriesDefinition
from yield_overlay.transport import DEFAULT_ROUTES, DEFAULT_TIMEOUT, TransportRoute
from yield_overlay.translator import MarkerPalette

SETTINGS_ENV_VAR = "YIELD_OVERLAY_SETTINGS"
SETTINGS_FILENAME = "overlay_settings.json"

_LOGGER = logging.getLogger("YieldOverlay.Config")


@dataclass
class OverlaySettings:
    """Values used to bootstrap the overlay; every field has a working default."""

    preset: str = DEFAULT_SERIES
    chart: Optional[str] = None
    interval_seconds: Optional[float] = None
    request_timeout: float = DEFAULT_TIMEOUT
    snapshot_path: Optional[str] = None
    snapshot_max_age_seconds: float = 900.0
    log_retention: int = 5
    positive_color: str = "crimson"
    negative_color: str = "limegreen"
    routes: Tuple[TransportRoute, ...] = field(default_factory=lambda: DEFAULT_ROUTES)

    @property
    def series(self) -> SeriesDefinition:
        return SERIES[self.preset]

    @property
    def chart_location(self) -> str:
        return self.chart or self.series.chart

    @property
    def interval_ms(self) -> float:
        seconds = self.interval_seconds if self.interval_seconds is not None else self.series.interval_seconds
        return seconds * 1000.0

    @property
    def snapshot_max_age(self) -> timedelta:
        return timedelta(seconds=self.snapshot_max_age_seconds)

    @property
    def palette(self) -> MarkerPalette:
        return MarkerPalette(non_negative=self.positive_color, negative=self.negative_color)


def _positive_float(value: Any, fallback: Optional[float]) -> Optional[float]:
    if value is None:
        return fallback
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(numeric) or numeric <= 0:
        return fallback
    return numeric


def _string(value: Any, fallback: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def _routes(value: Any) -> Tuple[TransportRoute, ...]:
    if not isinstance(value, list):
        return DEFAULT_ROUTES
    routes = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        try:
            routes.append(TransportRoute.from_mapping(entry))
        except ValueError as exc:
            _LOGGER.warning("Ignoring transport route %r: %s", entry, exc)
    return tuple(routes) or DEFAULT_ROUTES


def settings_from_mapping(data: Dict[str, Any]) -> OverlaySettings:
    defaults = OverlaySettings()
    preset = str(data.get("preset", defaults.preset)).strip().lower()
    if preset not in SERIES:
        _LOGGER.warning("Unknown preset %r; using %s", preset, defaults.preset)
        preset = defaults.preset

    retention = defaults.log_retention
    try:
        retention = int(data.get("log_retention", retention))
    except (TypeError, ValueError):
        retention = defaults.log_retention

    return OverlaySettings(
        preset=preset,
        chart=_string(data.get("chart"), defaults.chart),
        interval_seconds=_positive_float(data.get("interval_seconds"), defaults.interval_seconds),
        request_timeout=_positive_float(data.get("request_timeout"), defaults.request_timeout) or DEFAULT_TIMEOUT,
        snapshot_path=_string(data.get("snapshot_path"), defaults.snapshot_path),
        snapshot_max_age_seconds=_positive_float(data.get("snapshot_max_age_seconds"), defaults.snapshot_max_age_seconds)
        or defaults.snapshot_max_age_seconds,
        log_retention=max(1, retention),
        positive_color=_string(data.get("positive_color"), defaults.positive_color) or defaults.positive_color,
        negative_color=_string(data.get("negative_color"), defaults.negative_color) or defaults.negative_color,
        routes=_routes(data.get("routes")),
    )


def resolve_settings_path(explicit: Optional[str] = None) -> Path:
    if explicit:
        return Path(explicit).expanduser().resolve()
    env_override = os.getenv(SETTINGS_ENV_VAR)
    if env_override:
        return Path(env_override).expanduser().resolve()
    return (Path.cwd() / SETTINGS_FILENAME).resolve()


def load_settings(settings_path: Path) -> OverlaySettings:
    """Read overlay_settings.json if it exists; malformed content yields defaults."""
    try:
        raw = settings_path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return OverlaySettings()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        _LOGGER.warning("Ignoring malformed settings file %s: %s", settings_path, exc)
        return OverlaySettings()
    if not isinstance(data, dict):
        return OverlaySettings()
    return settings_from_mapping(data)
