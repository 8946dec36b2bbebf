from yield_overlay.chart_document import ChartDocument
from yield_overlay.models import MarkerState, PixelPoint
from yield_overlay.overlay_renderer import MARKER_ATTRIBUTE, OverlayRenderer, SvgMarkerAdapter

CHART = '<svg xmlns="http://www.w3.org/2000/svg" xlm="[0,100,0,500]" ylm="[0,10,400,0]"><circle r="2"/></svg>'


def _markers(document):
    return [circle for circle in document.iter_elements("circle") if circle.get(MARKER_ATTRIBUTE) == "true"]


def test_upsert_twice_keeps_single_marker_tooltip_and_pulse():
    document = ChartDocument.from_string(CHART)
    renderer = OverlayRenderer(SvgMarkerAdapter(document))

    renderer.upsert(PixelPoint(250.0, 200.0), "crimson", "first")
    renderer.upsert(PixelPoint(260.5, 180.25), "limegreen", "second")

    markers = _markers(document)
    assert len(markers) == 1
    marker = markers[0]
    titles = list(marker.iter(document.qualify("title")))
    animations = list(marker.iter(document.qualify("animate")))
    assert [title.text for title in titles] == ["second"]
    assert len(animations) == 1
    assert marker.get("cx") == "260.5"
    assert marker.get("cy") == "180.25"
    assert marker.get("fill") == "limegreen"
    assert len(list(document.iter_elements("circle"))) == 2


def test_marker_attributes_and_pulse_animation():
    document = ChartDocument.from_string(CHART)
    renderer = OverlayRenderer(SvgMarkerAdapter(document))
    renderer.upsert(PixelPoint(1.0, 2.0), "", "")

    marker = _markers(document)[0]
    assert marker.get("r") == "5"
    assert marker.get("stroke") == "black"
    assert marker.get("stroke-width") == "1"
    assert marker.get("fill") == "red"
    pulse = marker.find(document.qualify("animate"))
    assert pulse.get("attributeName") == "r"
    assert pulse.get("values") == "5;7;5"
    assert pulse.get("dur") == "0.6s"
    assert pulse.get("repeatCount") == "indefinite"


def test_existing_marker_in_document_is_reused():
    chart = CHART.replace("<circle r=\"2\"/>", '<circle data-live-dot="true" r="5"><title>old</title><title>older</title></circle>')
    document = ChartDocument.from_string(chart)
    OverlayRenderer(SvgMarkerAdapter(document)).upsert(PixelPoint(3.0, 4.0), "crimson", "new")
    marker = _markers(document)[0]
    assert [title.text for title in marker.iter(document.qualify("title"))] == ["new"]


def test_describe_returns_surface_neutral_state_and_notifies():
    seen = []

    class RecordingAdapter:
        def apply(self, state):
            seen.append(("apply", state))

        def clear(self):
            seen.append(("clear", None))

    renderer = OverlayRenderer(RecordingAdapter(), on_change=lambda state: seen.append(("changed", state)))
    renderer.upsert(PixelPoint(10.0, 20.0), "crimson", "tip")

    expected = MarkerState(x=10.0, y=20.0, color="crimson", tooltip="tip")
    assert renderer.state == expected
    assert seen == [("apply", expected), ("changed", expected)]
    renderer.dispose()
    assert renderer.state is None
    assert seen[-1] == ("clear", None)


def test_dispose_removes_marker_from_document():
    document = ChartDocument.from_string(CHART)
    renderer = OverlayRenderer(SvgMarkerAdapter(document))
    renderer.upsert(PixelPoint(1.0, 1.0), "crimson", "tip")
    renderer.dispose()
    assert _markers(document) == []
