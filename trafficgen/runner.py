from __future__ import annotations

import asyncio
import logging
import random
import signal
import time
from typing import Awaitable, Callable, TextIO

from .channel import EventChannel
from .models import Target
from .shaper import RequestShaper
from .stats import Aggregator
from .worker import Transport, Worker

logger = logging.getLogger("trafficgen.runner")

STOP_SIGNALS = ("SIGINT", "SIGTERM")


class TrafficGenerator:
    """Owns the workers, the event channel and the aggregator.

    ``run()`` starts everything, waits for the duration (or forever) or a stop
    signal, then shuts down: workers are cancelled and awaited, the channel
    is closed, and the aggregator drains what is left.
    """

    def __init__(
        self,
        targets: tuple[Target, ...] | list[Target],
        transport: Transport,
        interval: float = 2.0,
        verbose: bool = False,
        out: TextIO | None = None,
        seed: int | None = None,
        fixed_path: str | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.targets = tuple(targets)
        self.transport = transport
        self.channel = EventChannel()
        self.aggregator = Aggregator(self.channel, interval=interval, out=out, clock=clock)

        # One independent random source per worker, all derived from the seed.
        master = random.Random(seed)
        self.workers = [
            Worker(
                target,
                slot,
                RequestShaper(random.Random(master.getrandbits(64)), fixed_path=fixed_path),
                transport,
                self.channel,
                verbose=verbose,
                out=out,
                sleep=sleep,
            )
            for target in self.targets
            for slot in range(1, target.workers + 1)
        ]

        self._worker_tasks: list[asyncio.Task] = []
        self._aggregator_task: asyncio.Task | None = None
        self._stop: asyncio.Event | None = None
        self._shutdown: asyncio.Future | None = None

    def start(self) -> None:
        if self._worker_tasks:
            return
        self._stop = asyncio.Event()
        self._aggregator_task = asyncio.create_task(self.aggregator.run(), name="aggregator")
        self._worker_tasks = [asyncio.create_task(w.run(), name=w.name) for w in self.workers]
        for task in self._worker_tasks:
            task.add_done_callback(self._report_crash)
        logger.info("started %d workers across %d targets", len(self.workers), len(self.targets))

    def _report_crash(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("worker %s crashed: %r", task.get_name(), exc)

    def request_stop(self) -> None:
        if self._stop is not None:
            self._stop.set()

    def _install_signal_handlers(self) -> list[int]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig_name in STOP_SIGNALS:
            if not hasattr(signal, sig_name):
                continue
            sig = getattr(signal, sig_name)
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # Not supported here (e.g. Windows or a non-main thread).
                continue
            installed.append(sig)
        return installed

    async def wait(self, duration: float = 0) -> None:
        """Block until ``duration`` seconds pass (0 = forever) or a stop is requested."""
        if duration > 0:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=duration)
            except asyncio.TimeoutError:
                logger.info("duration of %ss elapsed", duration)
        else:
            await self._stop.wait()

    async def run(self, duration: float = 0, handle_signals: bool = True) -> None:
        self.start()
        installed = self._install_signal_handlers() if handle_signals else []
        try:
            await self.wait(duration)
        finally:
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)
            await self.shutdown()

    async def shutdown(self) -> None:
        if self._shutdown is None:
            self._shutdown = asyncio.ensure_future(self._shutdown_once())
        await asyncio.shield(self._shutdown)

    async def _shutdown_once(self) -> None:
        logger.info("shutting down")
        for task in self._worker_tasks:
            task.cancel()
        await asyncio.gather(*self._worker_tasks, return_exceptions=True)

        self.channel.close()
        if self._aggregator_task is not None:
            await self._aggregator_task
        logger.info("stopped after %d requests", self.channel.published)
