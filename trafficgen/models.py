from __future__ import annotations

from dataclasses import dataclass

# Status recorded when no HTTP status was obtained (DNS/TCP/TLS/timeout).
TRANSPORT_FAILURE = 0


@dataclass(frozen=True)
class Target:
    name: str
    base_url: str
    workers: int

    def url_for(self, path: str) -> str:
        return self.base_url.rstrip("/") + path


@dataclass(frozen=True)
class RequestShape:
    path: str
    user_agent: str
    request_id: str

    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "X-Request-Id": self.request_id,
            "Accept": "*/*",
        }


@dataclass(frozen=True)
class RequestOutcome:
    target: str
    status: int
    latency_ms: int
