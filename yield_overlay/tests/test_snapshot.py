import asyncio
import json
import logging
from datetime import datetime, timezone

from yield_overlay.acquisition import AcquisitionPipeline, SnapshotSource
from yield_overlay.models import Observation
from yield_overlay.series import SERIES
from yield_overlay.snapshot import run_batch, snapshot_payload, write_snapshot
from yield_overlay.transport import RouteFetcher, TransportRoute

TEN_YEAR = SERIES["10y"]
UPDATED = datetime(2024, 5, 1, 12, 0, 30, tzinfo=timezone.utc)


def _pipeline(session):
    fetcher = RouteFetcher([TransportRoute("direct")], timeout=1.0, session=session)
    return AcquisitionPipeline(TEN_YEAR, fetcher)


def test_payload_fields():
    observation = Observation(value=4.23, change=-0.02, label="US 10Y Yield: 4.23")
    assert snapshot_payload(observation, updated_at=UPDATED) == {
        "yieldValue": 4.23,
        "dayChangeValue": -0.02,
        "tooltip": "US 10Y Yield: 4.23",
        "updatedAt": "2024-05-01T12:00:30Z",
    }


def test_written_snapshot_is_readable_by_snapshot_source(tmp_path):
    target = tmp_path / "data" / "yield.json"
    write_snapshot(Observation(value=4.5, change=0.01, label="tip"), target, updated_at=UPDATED)

    assert json.loads(target.read_text(encoding="utf-8"))["yieldValue"] == 4.5
    assert not (tmp_path / "data" / "yield.json.tmp").exists()
    loaded = SnapshotSource(target, clock=lambda: UPDATED).load()
    assert loaded.value == 4.5
    assert loaded.label == "tip"


def test_batch_success_writes_file(tmp_path, fake_session_factory, fake_response_factory, bond_page):
    session = fake_session_factory({TEN_YEAR.target_url: fake_response_factory(200, bond_page(value="4.31", change="0.03%"))})
    target = tmp_path / "yield.json"

    assert asyncio.run(run_batch(_pipeline(session), target)) == 0
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["yieldValue"] == 4.31
    assert payload["dayChangeValue"] == 0.03
    assert payload["tooltip"].startswith("US 10Y Yield: 4.31")
    assert session.closed is False


def test_batch_failure_leaves_previous_snapshot(tmp_path, fake_session_factory, fake_response_factory, caplog):
    session = fake_session_factory({TEN_YEAR.target_url: fake_response_factory(503)})
    target = tmp_path / "yield.json"
    target.write_text('{"yieldValue": 4.0}', encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="YieldOverlay.Snapshot"):
        assert asyncio.run(run_batch(_pipeline(session), target)) == 1

    assert json.loads(target.read_text(encoding="utf-8")) == {"yieldValue": 4.0}
    assert "direct" in caplog.text
    assert "HTTP 503" in caplog.text
