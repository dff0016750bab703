from __future__ import annotations

import asyncio
import sys
import time
from typing import Awaitable, Callable, Protocol, TextIO

from .channel import EventChannel
from .models import RequestOutcome, Target
from .shaper import RequestShaper


class Transport(Protocol):
    async def perform(self, url: str, headers: dict[str, str]) -> tuple[int, int]: ...


def format_request(ts: str, target: str, slot: int, status: int, path: str, latency_ms: int) -> str:
    return f"[{ts}] {target} w={slot} {status:03d} {path} {latency_ms}ms"


class Worker:
    """One request loop bound to a (target, slot) pair.

    Runs until its task is cancelled; cancellation lands on whichever await
    is pending, the request or the think-time sleep.
    """

    def __init__(
        self,
        target: Target,
        slot: int,
        shaper: RequestShaper,
        transport: Transport,
        channel: EventChannel,
        verbose: bool = False,
        out: TextIO | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.target = target
        self.slot = slot
        self.shaper = shaper
        self.transport = transport
        self.channel = channel
        self.verbose = verbose
        self.out = out or sys.stdout
        self.sleep = sleep
        self.iterations = 0
        self.sent = 0

    @property
    def name(self) -> str:
        return f"{self.target.name}-w{self.slot}"

    async def request(self) -> RequestOutcome:
        shape = self.shaper.shape()
        status, latency_ms = await self.transport.perform(self.target.url_for(shape.path), shape.headers())
        outcome = RequestOutcome(target=self.target.name, status=status, latency_ms=latency_ms)
        self.sent += 1
        if self.verbose:
            ts = time.strftime("%H:%M:%S", time.localtime())
            print(format_request(ts, self.target.name, self.slot, status, shape.path, latency_ms), file=self.out)
        self.channel.publish(outcome)
        return outcome

    async def burst(self, size: int) -> None:
        for _ in range(size):
            await self.request()

    async def step(self) -> None:
        await self.request()
        await self.sleep(self.shaper.think_time())
        self.iterations += 1
        size = self.shaper.burst_size(self.iterations)
        if size:
            await self.burst(size)

    async def run(self) -> None:
        while True:
            await self.step()
