from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import Callable, TextIO

from .channel import EventChannel
from .models import RequestOutcome


def status_class(status: int) -> str:
    if 200 <= status < 300:
        return "ok"
    if 400 <= status < 500:
        return "4xx"
    if 500 <= status < 600:
        return "5xx"
    # Transport failures (status 0) and anything unexpected, 3xx included.
    return "000"


@dataclass
class WindowStats:
    count: int = 0
    ok: int = 0
    client_errors: int = 0
    server_errors: int = 0
    transport_failures: int = 0
    sum_ms: int = 0
    min_ms: int = 0
    max_ms: int = 0

    def record(self, status: int, latency_ms: int) -> None:
        bucket = status_class(status)
        if bucket == "ok":
            self.ok += 1
        elif bucket == "4xx":
            self.client_errors += 1
        elif bucket == "5xx":
            self.server_errors += 1
        else:
            self.transport_failures += 1

        if self.count == 0:
            self.min_ms = latency_ms
            self.max_ms = latency_ms
        else:
            self.min_ms = min(self.min_ms, latency_ms)
            self.max_ms = max(self.max_ms, latency_ms)
        self.count += 1
        self.sum_ms += latency_ms

    @property
    def avg_ms(self) -> int:
        return self.sum_ms // self.count if self.count else 0


def format_summary(ts: str, target: str, s: WindowStats) -> str:
    return (
        f"[{ts}] {target} req={s.count} ok={s.ok} 4xx={s.client_errors} "
        f"5xx={s.server_errors} 000={s.transport_failures} "
        f"avg={s.avg_ms}ms min={s.min_ms}ms max={s.max_ms}ms"
    )


class Aggregator:
    """Single consumer of the event channel.

    Keeps one WindowStats per target for the current window. The window is
    checked whenever an event arrives, so an idle period stretches it until
    the next event. Any partial window left when the channel closes is
    flushed once.
    """

    def __init__(
        self,
        channel: EventChannel,
        interval: float = 2.0,
        out: TextIO | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.channel = channel
        self.interval = float(interval)
        self.out = out or sys.stdout
        self.clock = clock
        self.windows: dict[str, WindowStats] = {}
        self.window_start = clock()
        self.total_counts: dict[str, int] = {}
        self.consumed = 0

    def reset(self) -> None:
        self.windows = {}
        self.window_start = self.clock()

    def record(self, outcome: RequestOutcome) -> None:
        stats = self.windows.get(outcome.target)
        if stats is None:
            stats = self.windows[outcome.target] = WindowStats()
        stats.record(outcome.status, outcome.latency_ms)
        self.consumed += 1

    def window_elapsed(self) -> bool:
        return self.clock() - self.window_start >= self.interval

    def emit(self) -> list[str]:
        ts = time.strftime("%H:%M:%S", time.localtime())
        lines = [format_summary(ts, target, self.windows[target]) for target in sorted(self.windows)]
        for line in lines:
            print(line, file=self.out)
        self.out.flush()
        for target, stats in self.windows.items():
            self.total_counts[target] = self.total_counts.get(target, 0) + stats.count
        self.reset()
        return lines

    def consume(self, outcome: RequestOutcome) -> None:
        self.record(outcome)
        if self.window_elapsed():
            self.emit()

    async def run(self) -> None:
        self.reset()
        async for outcome in self.channel:
            self.consume(outcome)
        if self.windows:
            self.emit()

