import asyncio
import io
import logging
import os
import signal
import time

import pytest

from conftest import StubTransport
from trafficgen.errors import ChannelClosedError
from trafficgen.models import RequestOutcome, Target
from trafficgen.runner import TrafficGenerator


def parse_summaries(text):
    """Summary lines -> list of {field: int} dicts (target kept as a string)."""
    rows = []
    for line in text.splitlines():
        if " req=" not in line:
            continue
        parts = line.split()
        row = {"target": parts[1]}
        for part in parts[2:]:
            key, value = part.split("=")
            row[key] = int(value.rstrip("ms"))
        rows.append(row)
    return rows


def bookinfo_stub():
    return StubTransport(
        status=0,
        rules=[
            (lambda url: url.endswith("/productpage"), 200),
            (lambda url: "/ratings" in url, 404),
        ],
    )


def test_fixed_path_window_is_all_ok():
    out = io.StringIO()
    transport = bookinfo_stub()

    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 1)], transport, interval=0.3,
                               out=out, seed=1, fixed_path="/productpage")
        await gen.run(duration=0.35, handle_signals=False)
        return gen

    gen = asyncio.run(scenario())
    rows = parse_summaries(out.getvalue())
    assert rows
    total = sum(r["req"] for r in rows)
    assert total == transport.calls == gen.channel.published
    for r in rows:
        assert r["ok"] == r["req"]
        assert r["4xx"] == r["5xx"] == r["000"] == 0
        assert r["min"] == r["avg"] == r["max"] == 10


def test_always_failing_transport():
    out = io.StringIO()
    transport = StubTransport(status=0)

    async def scenario():
        gen = TrafficGenerator([Target("west", "http://west", 2)], transport, interval=0.2, out=out, seed=2)
        await gen.run(duration=0.3, handle_signals=False)

    asyncio.run(scenario())
    rows = parse_summaries(out.getvalue())
    assert rows
    for r in rows:
        assert r["ok"] == 0
        assert r["000"] == r["req"]
        assert r["avg"] == 0


def test_no_lost_or_duplicated_events():
    out = io.StringIO()
    transport = StubTransport(status=200, delay=0.01)
    targets = [Target("east", "http://east", 4), Target("west", "http://west", 3)]

    async def scenario():
        gen = TrafficGenerator(targets, transport, interval=0.1, out=out, seed=3)
        await gen.run(duration=0.5, handle_signals=False)
        return gen

    gen = asyncio.run(scenario())
    assert len(gen.workers) == 7
    assert gen.aggregator.consumed == gen.channel.published == transport.calls
    assert sum(gen.aggregator.total_counts.values()) == transport.calls
    sent = {name: sum(w.sent for w in gen.workers if w.target.name == name) for name in ("east", "west")}
    assert gen.aggregator.total_counts == sent
    rows = parse_summaries(out.getvalue())
    assert sum(r["req"] for r in rows) == transport.calls


def test_workers_get_distinct_slots_and_random_sources():
    gen = TrafficGenerator([Target("east", "http://east", 3)], StubTransport(), seed=4)
    assert [w.slot for w in gen.workers] == [1, 2, 3]
    first_ids = {w.shaper.request_id() for w in gen.workers}
    assert len(first_ids) == 3


def test_seed_makes_runs_reproducible():
    a = TrafficGenerator([Target("east", "http://east", 2)], StubTransport(), seed=5)
    b = TrafficGenerator([Target("east", "http://east", 2)], StubTransport(), seed=5)
    assert [w.shaper.shape() for w in a.workers] == [w.shaper.shape() for w in b.workers]


def test_shutdown_mid_sleep_is_bounded():
    transport = StubTransport(status=200, delay=0.01)

    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 8)], transport, interval=2, out=io.StringIO(), seed=6)
        for w in gen.workers:
            w.shaper.think_time = lambda: 3600.0
        gen.start()
        await asyncio.sleep(0.1)
        started = time.monotonic()
        await gen.shutdown()
        elapsed = time.monotonic() - started
        with pytest.raises(ChannelClosedError):
            gen.channel.publish(RequestOutcome("east", 200, 1))
        await asyncio.sleep(0.05)
        return gen, elapsed

    gen, elapsed = asyncio.run(scenario())
    assert elapsed < 3
    assert gen.channel.closed
    assert transport.calls == 8
    assert gen.aggregator.consumed == 8
    assert all(t.done() for t in gen._worker_tasks)


def test_shutdown_is_idempotent():
    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 2)], StubTransport(delay=0.01), out=io.StringIO())
        gen.start()
        await asyncio.sleep(0.05)
        await asyncio.gather(gen.shutdown(), gen.shutdown())
        await gen.shutdown()
        return gen

    gen = asyncio.run(scenario())
    assert gen.channel.closed
    assert all(t.done() for t in gen._worker_tasks)


def test_request_stop_ends_unbounded_run():
    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 1)], StubTransport(delay=0.01), out=io.StringIO())
        asyncio.get_running_loop().call_later(0.1, gen.request_stop)
        await asyncio.wait_for(gen.run(duration=0, handle_signals=False), timeout=3)
        return gen

    gen = asyncio.run(scenario())
    assert gen.channel.closed
    assert gen.aggregator.consumed == gen.channel.published


def test_shutdown_before_start():
    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 1)], StubTransport())
        await gen.shutdown()
        return gen

    assert asyncio.run(scenario()).channel.closed


@pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
def test_operator_signal_stops_unbounded_run(sig):
    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 2)], StubTransport(delay=0.01), out=io.StringIO())
        loop = asyncio.get_running_loop()
        loop.call_later(0.1, os.kill, os.getpid(), sig)
        await asyncio.wait_for(gen.run(duration=0), timeout=3)
        return gen

    gen = asyncio.run(scenario())
    assert gen.channel.closed
    assert gen.aggregator.consumed == gen.channel.published > 0


class BrokenTransport:
    async def perform(self, url, headers):
        raise RuntimeError("boom")


def test_crashed_worker_is_logged_while_running(caplog):
    async def scenario():
        gen = TrafficGenerator([Target("east", "http://east", 1)], BrokenTransport(), out=io.StringIO())
        gen.start()
        await asyncio.sleep(0.05)
        crashed = [r for r in caplog.records if "crashed" in r.getMessage()]
        await gen.shutdown()
        return crashed

    with caplog.at_level(logging.ERROR, logger="trafficgen.runner"):
        crashed = asyncio.run(scenario())
    assert len(crashed) == 1
    assert "east-w1" in crashed[0].getMessage()
    assert "boom" in crashed[0].getMessage()
