import json

import pytest

from yield_overlay import __version__, launcher
from yield_overlay.logging_utils import LOG_DIR_ENV_VAR

CHART = '<svg xmlns="http://www.w3.org/2000/svg" xlm="[0,100,0,500]" ylm="[0,10,400,0]"/>'


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(LOG_DIR_ENV_VAR, str(tmp_path / "logs"))
    monkeypatch.chdir(tmp_path)


def test_map_prints_pixel_point(tmp_path, capsys):
    chart = tmp_path / "chart.svg"
    chart.write_text(CHART, encoding="utf-8")

    assert launcher.main(["map", "--chart", str(chart), "50", "5"]) == 0
    assert capsys.readouterr().out.strip() == "250 200"


def test_map_without_calibration_exits_2(tmp_path):
    chart = tmp_path / "plain.svg"
    chart.write_text('<svg xmlns="http://www.w3.org/2000/svg"/>', encoding="utf-8")
    assert launcher.main(["map", "--chart", str(chart), "1", "1"]) == 2
    assert launcher.main(["map", "--chart", str(tmp_path / "missing.svg"), "1", "1"]) == 2


def test_fetch_bypasses_snapshot_and_writes_output(tmp_path, monkeypatch, fake_session_factory, fake_response_factory, bond_page):
    from yield_overlay.acquisition import AcquisitionPipeline
    from yield_overlay.transport import RouteFetcher, TransportRoute

    captured = {}

    def fake_build_pipeline(settings, *, use_snapshot=True):
        captured["use_snapshot"] = use_snapshot
        session = fake_session_factory({settings.series.target_url: fake_response_factory(200, bond_page())})
        return AcquisitionPipeline(settings.series, RouteFetcher([TransportRoute("direct")], session=session))

    monkeypatch.setattr(launcher, "build_pipeline", fake_build_pipeline)
    out = tmp_path / "snap.json"

    assert launcher.main(["fetch", "--out", str(out)]) == 0
    assert captured["use_snapshot"] is False
    assert json.loads(out.read_text(encoding="utf-8"))["yieldValue"] == 4.23


def test_watch_writes_chart_with_marker(tmp_path, monkeypatch, fake_session_factory, fake_response_factory, bond_page):
    from yield_overlay.acquisition import AcquisitionPipeline
    from yield_overlay.transport import RouteFetcher, TransportRoute

    def fake_build_pipeline(settings, *, use_snapshot=True):
        session = fake_session_factory({settings.series.target_url: fake_response_factory(200, bond_page())})
        return AcquisitionPipeline(settings.series, RouteFetcher([TransportRoute("direct")], session=session))

    monkeypatch.setattr(launcher, "build_pipeline", fake_build_pipeline)
    chart = tmp_path / "chart.svg"
    chart.write_text(CHART, encoding="utf-8")
    out = tmp_path / "live.svg"

    assert launcher.main(["watch", "--chart", str(chart), "--out", str(out), "--ticks", "1"]) == 0
    written = out.read_text(encoding="utf-8")
    assert 'data-live-dot="true"' in written
    assert "US 10Y Yield: 4.23" in written


def test_version_flag(capsys):
    with pytest.raises(SystemExit):
        launcher.main(["--version"])
    assert __version__ in capsys.readouterr().out
