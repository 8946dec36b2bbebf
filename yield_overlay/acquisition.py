"""Fetch one yield observation through the route and parse-strategy cascade."""
from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from yield_overlay.errors import AcquisitionError
from yield_overlay.html_document import parse_html
from yield_overlay.models import Observation
from yield_overlay.parse_strategies import (
    NamedStrategy,
    default_strategies,
    extract_fields,
    format_label,
    locate_row,
    normalise_fields,
)
from yield_overlay.series import SeriesDefinition
from yield_overlay.transport import RouteAttempt, RouteFetcher

_LOGGER = logging.getLogger("YieldOverlay.Acquisition")

DEFAULT_SNAPSHOT_MAX_AGE = timedelta(minutes=15)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class SnapshotSource:
    """Reads the JSON written by batch runs and serves it while it is fresh."""

    def __init__(self, path: Path, *, max_age: timedelta = DEFAULT_SNAPSHOT_MAX_AGE, clock: Clock = _utc_now) -> None:
        self._path = Path(path)
        self._max_age = max_age
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Observation]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            _LOGGER.debug("Snapshot %s unreadable: %s", self._path, exc)
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            _LOGGER.debug("Snapshot %s is not valid JSON: %s", self._path, exc)
            return None
        if not isinstance(data, dict):
            return None

        updated_at = _parse_timestamp(data.get("updatedAt"))
        if updated_at is None:
            try:
                updated_at = datetime.fromtimestamp(self._path.stat().st_mtime, tz=timezone.utc)
            except OSError:
                return None
        age = self._clock() - updated_at
        if age > self._max_age:
            _LOGGER.debug("Snapshot %s is stale (age=%s)", self._path, age)
            return None

        try:
            value = float(data.get("yieldValue"))
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value):
            return None
        try:
            change = float(data.get("dayChangeValue", 0.0))
        except (TypeError, ValueError):
            change = 0.0
        if not math.isfinite(change):
            change = 0.0
        tooltip = data.get("tooltip")
        return Observation(
            value=value,
            change=change,
            label=str(tooltip) if tooltip is not None else "",
            observed_at=updated_at,
            source="snapshot",
        )


class AcquisitionPipeline:
    """Produce an :class:`Observation` or ``None``; failures never propagate.

    Order of work per call: a fresh persisted snapshot (when configured), then
    the transport routes in priority order, then the parse strategies in
    priority order on the first successful body.
    """

    def __init__(
        self,
        series: SeriesDefinition,
        fetcher: RouteFetcher,
        *,
        strategies: Optional[Sequence[NamedStrategy]] = None,
        snapshot: Optional[SnapshotSource] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._series = series
        self._fetcher = fetcher
        self._strategies: List[NamedStrategy] = list(strategies) if strategies is not None else default_strategies(series)
        self._snapshot = snapshot
        self._clock = clock
        self.last_error: Optional[str] = None
        self.last_strategy: Optional[str] = None

    @property
    def series(self) -> SeriesDefinition:
        return self._series

    @property
    def last_attempts(self) -> Sequence[RouteAttempt]:
        return tuple(self._fetcher.attempts)

    async def fetch_observation(self) -> Optional[Observation]:
        self.last_error = None
        self.last_strategy = None
        if self._snapshot is not None:
            cached = self._snapshot.load()
            if cached is not None:
                _LOGGER.debug("Using persisted snapshot %s", self._snapshot.path)
                return cached
        try:
            response = await self._fetcher.fetch(self._series.target_url)
            observation = self.parse_document(response.text, source=response.route)
        except AcquisitionError as exc:
            self.last_error = str(exc)
            _LOGGER.warning("Yield fetch failed: %s", exc)
            return None
        _LOGGER.debug(
            "Fetched %s=%s (change %+.3f) via %s using %s",
            self._series.key,
            observation.value,
            observation.change,
            observation.source,
            self.last_strategy,
        )
        return observation

    def parse_document(self, html: str, *, source: str = "") -> Observation:
        """Parse an upstream HTML body. Raises :class:`ParseFailure` on hard failures."""

        document = parse_html(html)
        strategy_name, row = locate_row(document, self._strategies)
        self.last_strategy = strategy_name
        fields = extract_fields(row, self._series.pattern)
        value, change = normalise_fields(fields)
        now = self._clock()
        return Observation(
            value=value,
            change=change,
            label=format_label(self._series.label_prefix, fields, now=now),
            observed_at=now if now.tzinfo else now.astimezone(timezone.utc),
            source=source,
        )

    def close(self) -> None:
        self._fetcher.close()
