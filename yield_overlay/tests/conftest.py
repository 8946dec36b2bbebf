import os
from typing import Dict, List, Optional

import pytest
import requests


def pytest_runtest_setup(item):
    if item.get_closest_marker("pyqt_required"):
        if not os.getenv("PYQT_TESTS"):
            pytest.skip("PYQT_TESTS not set; skipping PyQt-dependent test")


ROW_TEMPLATE = """
<html><head><script>var seo = "USGG10YR:IND 10 Year 9.99";</script></head>
<body>
<table class="table table-hover table-condensed">
  <thead><tr><th></th><th>Yield</th><th>Day</th><th>Month</th></tr></thead>
  <tbody>
    <tr data-symbol="USGG10YR:IND">
      <td><a href="/usgg10yr:ind">US 10Y</a></td>
      <td>{value}</td>
      <td>4.0</td>
      <td>{change}</td>
      <td>0.12%</td>
      <td>-0.40%</td>
      <td>{time}</td>
    </tr>
  </tbody>
</table>
</body></html>
"""


@pytest.fixture
def bond_page():
    def _build(value: str = "4.23", change: str = "-0.02%", time: str = "10:15:00") -> str:
        return ROW_TEMPLATE.format(value=value, change=change, time=time)

    return _build


class FakeResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Maps URL prefixes to canned responses or exceptions and records calls."""

    def __init__(self, responses: Optional[Dict[str, object]] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[str] = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        for prefix, outcome in self.responses.items():
            if url.startswith(prefix):
                if isinstance(outcome, BaseException):
                    raise outcome
                return outcome
        raise requests.ConnectionError(f"no route to {url}")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session_factory():
    return FakeSession


@pytest.fixture
def fake_response_factory():
    return FakeResponse


@pytest.fixture(autouse=True)
def _restore_package_logger():
    import logging

    logger = logging.getLogger("YieldOverlay")
    level, propagate, handlers = logger.level, logger.propagate, list(logger.handlers)
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate
