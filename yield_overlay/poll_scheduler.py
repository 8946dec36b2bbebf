"""Fixed-interval, single-flight polling on an asyncio loop."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, Set, TypeVar

T = TypeVar("T")

Producer = Callable[[], Awaitable[Optional[T]]]
SleepFunc = Callable[[float], Awaitable[None]]

_LOGGER = logging.getLogger("YieldOverlay.Scheduler")


class PollScheduler(Generic[T]):
    """Invoke a producer once per interval and hand non-``None`` results to ``on_result``.

    A tick that fires while the previous producer call is still running is
    skipped rather than queued. A producer returning ``None`` (or raising) is a
    missed update: nothing is rendered and the loop waits for the next tick.
    """

    def __init__(
        self,
        on_result: Callable[[T], None],
        *,
        sleep: SleepFunc = asyncio.sleep,
        name: str = "live-point",
    ) -> None:
        self._on_result = on_result
        self._sleep = sleep
        self._name = name
        self._producer: Optional[Producer[T]] = None
        self._interval: float = 0.0
        self._loop_task: Optional[asyncio.Task[None]] = None
        self._tick_tasks: Set[asyncio.Task[bool]] = set()
        self._in_flight = False
        self.ticks = 0
        self.rendered = 0
        self.skipped_unavailable = 0
        self.skipped_in_flight = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self, producer: Producer[T], interval_ms: float) -> "asyncio.Task[None]":
        """Begin polling on the running loop; the first call happens immediately."""

        if self.running:
            raise RuntimeError(f"Scheduler {self._name} is already running")
        self._bind(producer, interval_ms)
        self._loop_task = asyncio.get_running_loop().create_task(self._run(None), name=f"poll:{self._name}")
        _LOGGER.info("Polling started for %s every %.1fs", self._name, self._interval)
        return self._loop_task

    async def run_forever(self, producer: Producer[T], interval_ms: float, *, max_ticks: Optional[int] = None) -> None:
        """Poll in the current task until cancelled or *max_ticks* ticks have fired."""

        self._bind(producer, interval_ms)
        try:
            await self._run(max_ticks)
        except asyncio.CancelledError:
            self.stop()
            raise
        finally:
            await self._drain()

    def stop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
            _LOGGER.info("Polling stopped for %s", self._name)
        for task in list(self._tick_tasks):
            task.cancel()

    async def wait_closed(self) -> None:
        await self._drain()

    async def tick(self) -> bool:
        """Run one producer invocation now. Returns True when a result was rendered."""

        if self._in_flight:
            self._note_busy()
            return False
        self._in_flight = True
        return await self._invoke()

    # Internal helpers -----------------------------------------------------

    def _bind(self, producer: Producer[T], interval_ms: float) -> None:
        interval = float(interval_ms) / 1000.0
        if interval <= 0:
            raise ValueError("interval_ms must be positive")
        self._producer = producer
        self._interval = interval

    async def _run(self, max_ticks: Optional[int]) -> None:
        fired = 0
        while max_ticks is None or fired < max_ticks:
            self._spawn_tick()
            fired += 1
            if max_ticks is not None and fired >= max_ticks:
                break
            await self._sleep(self._interval)

    def _spawn_tick(self) -> None:
        if self._in_flight:
            self._note_busy()
            return
        self._in_flight = True
        task = asyncio.get_running_loop().create_task(self._invoke())
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    def _note_busy(self) -> None:
        self.skipped_in_flight += 1
        _LOGGER.debug("Skipping %s tick: previous fetch still in flight", self._name)

    async def _invoke(self) -> bool:
        if self._producer is None:
            self._in_flight = False
            raise RuntimeError("No producer bound; call start() or run_forever() first")
        self.ticks += 1
        try:
            result = await self._producer()
        except asyncio.CancelledError:
            raise
        except Exception:
            _LOGGER.exception("Producer for %s raised; treating tick as unavailable", self._name)
            result = None
        finally:
            self._in_flight = False
        if result is None:
            self.skipped_unavailable += 1
            _LOGGER.debug("No data for %s tick %d; keeping previous overlay", self._name, self.ticks)
            return False
        try:
            self._on_result(result)
        except Exception:
            _LOGGER.exception("Rendering %s tick %d failed", self._name, self.ticks)
            return False
        self.rendered += 1
        return True

    async def _drain(self) -> None:
        pending = [task for task in self._tick_tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
