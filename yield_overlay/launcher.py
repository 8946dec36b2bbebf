from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from yield_overlay import __version__
from yield_overlay.acquisition import AcquisitionPipeline, SnapshotSource
from yield_overlay.chart_document import ChartDocument
from yield_overlay.client_config import OverlaySettings, load_settings, resolve_settings_path
from yield_overlay.errors import CalibrationUnavailable, ChartLoadError
from yield_overlay.live_point import LivePointController
from yield_overlay.logging_utils import configure_logging
from yield_overlay.overlay_renderer import OverlayRenderer, SvgMarkerAdapter
from yield_overlay.series import SERIES
from yield_overlay.snapshot import DEFAULT_SNAPSHOT_PATH, run_batch
from yield_overlay.transport import RouteFetcher

_LOGGER = logging.getLogger("YieldOverlay.Launcher")


def build_pipeline(settings: OverlaySettings, *, use_snapshot: bool = True) -> AcquisitionPipeline:
    snapshot = None
    if use_snapshot and settings.snapshot_path:
        snapshot = SnapshotSource(Path(settings.snapshot_path), max_age=settings.snapshot_max_age)
    fetcher = RouteFetcher(settings.routes, timeout=settings.request_timeout)
    return AcquisitionPipeline(settings.series, fetcher, snapshot=snapshot)


def _cmd_view(settings: OverlaySettings, args: argparse.Namespace) -> int:
    from PyQt6.QtWidgets import QApplication

    from yield_overlay.viewer import ChartViewerWindow

    app = QApplication(sys.argv)
    window = ChartViewerWindow(lambda: build_pipeline(settings), settings.interval_ms, palette=settings.palette)
    window.resize(1280, 960)
    window.load_chart(args.chart or settings.chart_location)
    window.show()
    exit_code = app.exec()
    _LOGGER.info("Viewer exiting with code %s", exit_code)
    return int(exit_code)


def _cmd_watch(settings: OverlaySettings, args: argparse.Namespace) -> int:
    try:
        document = ChartDocument.load(args.chart or settings.chart_location)
    except ChartLoadError as exc:
        _LOGGER.error("%s", exc)
        return 1
    output = Path(args.out)

    def _persist(_state) -> None:
        document.write(output)

    renderer = OverlayRenderer(SvgMarkerAdapter(document), on_change=_persist)
    controller = LivePointController.for_renderer(
        document.calibration,
        build_pipeline(settings),
        renderer,
        palette=settings.palette,
    )
    try:
        asyncio.run(controller.run(settings.interval_ms, max_ticks=args.ticks))
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted")
    finally:
        controller.dispose()
    scheduler = controller.scheduler
    _LOGGER.info(
        "Watch finished: ticks=%d rendered=%d unavailable=%d busy=%d",
        scheduler.ticks,
        scheduler.rendered,
        scheduler.skipped_unavailable,
        scheduler.skipped_in_flight,
    )
    return 0


def _cmd_fetch(settings: OverlaySettings, args: argparse.Namespace) -> int:
    output = Path(args.out) if args.out else Path(settings.snapshot_path or DEFAULT_SNAPSHOT_PATH)
    # The snapshot being produced must not satisfy its own fetch.
    return asyncio.run(run_batch(build_pipeline(settings, use_snapshot=False), output))


def _cmd_map(settings: OverlaySettings, args: argparse.Namespace) -> int:
    try:
        document = ChartDocument.load(args.chart)
        document.require_calibration()
    except (ChartLoadError, CalibrationUnavailable) as exc:
        _LOGGER.error("%s", exc)
        return 2
    point = document.get_logical_coordinates(args.x, args.y)
    if point is None:  # pragma: no cover - require_calibration guards this
        return 2
    print(f"{point.x:.6g} {point.y:.6g}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="yield-overlay", description="Live yield point overlay for SVG charts")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--settings", help="Path to overlay_settings.json (default: $YIELD_OVERLAY_SETTINGS or ./overlay_settings.json)")
    parser.add_argument("--preset", choices=sorted(SERIES), help="Bond series to track")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    view = subparsers.add_parser("view", help="Open the chart viewer with a live point")
    view.add_argument("--chart", help="SVG path or URL")
    view.set_defaults(handler=_cmd_view)

    watch = subparsers.add_parser("watch", help="Poll headlessly and write the updated SVG")
    watch.add_argument("--chart", help="SVG path or URL")
    watch.add_argument("--out", required=True, help="Where to write the chart after each update")
    watch.add_argument("--ticks", type=int, default=None, help="Stop after this many polls")
    watch.set_defaults(handler=_cmd_watch)

    fetch = subparsers.add_parser("fetch", help="Fetch once and write the JSON snapshot")
    fetch.add_argument("--out", help=f"Snapshot path (default: {DEFAULT_SNAPSHOT_PATH})")
    fetch.set_defaults(handler=_cmd_fetch)

    map_cmd = subparsers.add_parser("map", help="Print the pixel position of a domain point")
    map_cmd.add_argument("--chart", required=True, help="SVG path or URL")
    map_cmd.add_argument("x", type=float, help="Domain x (100ns ticks)")
    map_cmd.add_argument("y", type=float, help="Domain y (yield)")
    map_cmd.set_defaults(handler=_cmd_map)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings_path = resolve_settings_path(args.settings)
    settings = load_settings(settings_path)
    if args.preset:
        settings.preset = args.preset
    configure_logging(retention=settings.log_retention, debug_enabled=True if args.debug else None)
    _LOGGER.info("Starting yield overlay %s (pid=%s, command=%s)", __version__, os.getpid(), args.command)
    _LOGGER.debug("Loaded settings from %s: %s", settings_path, settings)
    return int(args.handler(settings, args))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
