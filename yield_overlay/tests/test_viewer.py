import os

import pytest

pytest.importorskip("PyQt6.QtSvgWidgets")

from PyQt6.QtWidgets import QApplication  # noqa: E402

from yield_overlay.chart_document import ChartDocument  # noqa: E402
from yield_overlay.models import OverlayPoint, PixelPoint  # noqa: E402
from yield_overlay.viewer import ChartViewerWindow  # noqa: E402

pytestmark = pytest.mark.pyqt_required

CHART = '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" xlm="[0,100,0,500]" ylm="[0,10,400,0]"/>'


class IdlePipeline:
    def __init__(self):
        from yield_overlay.series import SERIES

        self.series = SERIES["10y"]
        self.closed = False

    async def fetch_observation(self):
        return None

    def close(self):
        self.closed = True


@pytest.fixture(scope="module")
def qt_app():
    # Force Qt to run headless for CI/CLI test runs.
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


def test_bad_path_shows_placeholder(qt_app, tmp_path):
    window = ChartViewerWindow(IdlePipeline, 60_000)
    missing = str(tmp_path / "missing.svg")
    assert window.load_chart(missing) is False
    assert window.placeholder_text == f"Failed to load SVG from {missing}."
    assert window.document is None
    window.close()


def test_points_from_replaced_worker_are_ignored(qt_app):
    pipelines = []

    def factory():
        pipelines.append(IdlePipeline())
        return pipelines[-1]

    window = ChartViewerWindow(factory, 60_000)
    window.show()
    first = ChartDocument.from_string(CHART)
    window.show_document(first)
    stale_worker = window._worker
    window.show_document(ChartDocument.from_string(CHART))

    overlay = OverlayPoint(PixelPoint(10.0, 20.0), "crimson", "tip")
    window._apply_point(stale_worker, overlay)
    assert window._renderer.state is None

    window._apply_point(window._worker, overlay)
    assert window._renderer.state.tooltip == "tip"
    window.close()
    assert all(pipeline.closed for pipeline in pipelines)
