import asyncio

import pytest


class StubTransport:
    """Answers by path; counts only requests that completed."""

    def __init__(self, status=200, latency_ms=10, delay=0.0, rules=None):
        self.status = status
        self.latency_ms = latency_ms
        self.delay = delay
        self.rules = rules or []
        self.calls = 0
        self.urls = []
        self.headers = []

    def status_for(self, url):
        for match, status in self.rules:
            if match(url):
                return status
        return self.status

    async def perform(self, url, headers):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls += 1
        self.urls.append(url)
        self.headers.append(headers)
        status = self.status_for(url)
        return status, (0 if status == 0 else self.latency_ms)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture
def stub_transport():
    return StubTransport()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
