"""Ordered transport routes to the upstream page (direct, then relays)."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote

import requests
from requests import exceptions as requests_exceptions

from yield_overlay import __version__
from yield_overlay.errors import AllRoutesExhausted, TransportFailure

_LOGGER = logging.getLogger("YieldOverlay.Transport")

DEFAULT_TIMEOUT = 12.0
_DEFAULT_USER_AGENT = f"YieldOverlay/{__version__}"
# Matches encodeURIComponent's unreserved set.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class TransportRoute:
    """One way of reaching the upstream page.

    An empty ``base_url`` requests the target directly. Otherwise the target is
    appended to ``base_url``, percent-encoded when ``encode_target`` is set.
    """

    name: str
    base_url: str = ""
    encode_target: bool = True

    def build_url(self, target_url: str) -> str:
        if not self.base_url:
            return target_url
        suffix = quote(target_url, safe=_URI_COMPONENT_SAFE) if self.encode_target else target_url
        return f"{self.base_url}{suffix}"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TransportRoute":
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValueError("route name is required")
        return cls(
            name=name,
            base_url=str(data.get("base_url") or ""),
            encode_target=bool(data.get("encode_target", True)),
        )


DEFAULT_ROUTES: Tuple[TransportRoute, ...] = (
    TransportRoute("direct"),
    TransportRoute("corsproxy", "https://corsproxy.io/?", encode_target=True),
    TransportRoute("allorigins", "https://api.allorigins.win/raw?url=", encode_target=True),
)


@dataclass(frozen=True)
class RouteAttempt:
    route: str
    url: str
    ok: bool
    elapsed: float
    status: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RouteResponse:
    route: str
    url: str
    status: int
    text: str


class RouteFetcher:
    """Try routes strictly in order; the first 2xx response wins.

    Each attempt runs the blocking ``requests`` call in a worker thread so the
    event loop stays responsive, but attempts never overlap.
    """

    def __init__(
        self,
        routes: Iterable[TransportRoute] = DEFAULT_ROUTES,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        user_agent: str = _DEFAULT_USER_AGENT,
    ) -> None:
        self._routes: List[TransportRoute] = list(routes)
        self._timeout = max(0.1, float(timeout))
        self._session = session
        self._owns_session = session is None
        self._headers = {"User-Agent": user_agent, "Accept": "text/html,application/xhtml+xml"}
        self.attempts: List[RouteAttempt] = []

    @property
    def routes(self) -> Sequence[TransportRoute]:
        return tuple(self._routes)

    def _http(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None

    async def fetch(self, target_url: str) -> RouteResponse:
        self.attempts = []
        failures: List[TransportFailure] = []
        for route in self._routes:
            try:
                return await self._attempt(route, target_url)
            except TransportFailure as exc:
                failures.append(exc)
                _LOGGER.debug("Route %s failed: %s", route.name, exc.reason)
        raise AllRoutesExhausted(failures)

    async def _attempt(self, route: TransportRoute, target_url: str) -> RouteResponse:
        url = route.build_url(target_url)
        started = time.monotonic()
        try:
            # The requests timeout only bounds connect and inter-byte gaps.
            response = await asyncio.wait_for(asyncio.to_thread(self._get, url), self._timeout)
        except (asyncio.TimeoutError, requests_exceptions.Timeout) as exc:
            reason = f"timed out after {self._timeout:g}s"
            self._record(route, url, started, error=reason)
            raise TransportFailure(route.name, reason) from exc
        except requests_exceptions.RequestException as exc:
            self._record(route, url, started, error=str(exc))
            raise TransportFailure(route.name, str(exc)) from exc
        try:
            if not 200 <= response.status_code < 300:
                reason = f"HTTP {response.status_code}"
                self._record(route, url, started, status=response.status_code, error=reason)
                raise TransportFailure(route.name, reason)
            text = response.text
        finally:
            response.close()
        self._record(route, url, started, status=response.status_code)
        _LOGGER.debug("Route %s answered HTTP %s (%d bytes)", route.name, response.status_code, len(text))
        return RouteResponse(route=route.name, url=url, status=response.status_code, text=text)

    def _get(self, url: str) -> requests.Response:
        return self._http().get(url, headers=self._headers, timeout=self._timeout)

    def _record(
        self,
        route: TransportRoute,
        url: str,
        started: float,
        *,
        status: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        self.attempts.append(
            RouteAttempt(
                route=route.name,
                url=url,
                ok=error is None,
                elapsed=time.monotonic() - started,
                status=status,
                error=error,
            )
        )
