from __future__ import annotations

import math
import os
from dataclasses import dataclass, field

from .errors import ConfigurationError

APP_NAME = os.getenv("APP_NAME", "trafficgen")

# Targets are cluster contexts; each one is resolved to a base URL at startup.
TARGETS_RAW = os.getenv("TARGETS", "east,west").strip()

# Optional static base URLs, bypassing route discovery.
# Format: east=http://localhost:8000,west=http://localhost:8001
TARGET_URLS_RAW = os.getenv("TARGET_URLS", "").strip()

# Route discovery
ROUTE_NAMESPACE = os.getenv("ROUTE_NAMESPACE", "bookinfo")
ROUTE_NAME = os.getenv("ROUTE_NAME", "bookinfo-gateway")
ROUTE_SCHEME = os.getenv("ROUTE_SCHEME", "http")
OC_BINARY = os.getenv("OC_BINARY", "oc")
DISCOVERY_TIMEOUT = float(os.getenv("DISCOVERY_TIMEOUT", "15"))

# Run defaults (overridable from the command line)
WORKERS_PER_TARGET = int(os.getenv("WORKERS_PER_TARGET", "8"))
STATS_INTERVAL = float(os.getenv("STATS_INTERVAL", "2"))
DURATION_SECONDS = float(os.getenv("DURATION_SECONDS", "0"))  # 0 = forever

# Request timeouts (seconds)
CONNECT_TIMEOUT = float(os.getenv("CONNECT_TIMEOUT", "2"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()


def parse_pairs(raw: str) -> dict[str, str]:
    """Parse KEY=VALUE lists: east=http://a,west=http://b -> {"east": "http://a", ...}."""
    pairs: dict[str, str] = {}
    if not raw:
        return pairs
    for item in raw.split(","):
        item = item.strip()
        if not item or "=" not in item:
            continue
        k, v = item.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k or not v:
            continue
        pairs[k] = v
    return pairs


def parse_names(raw: str) -> list[str]:
    """Parse a comma-separated name list, keeping first-seen order."""
    names: list[str] = []
    for item in (raw or "").split(","):
        item = item.strip()
        if item and item not in names:
            names.append(item)
    return names


TARGETS = parse_names(TARGETS_RAW)
TARGET_URLS = parse_pairs(TARGET_URLS_RAW)


@dataclass
class Settings:
    targets: list[str] = field(default_factory=lambda: list(TARGETS))
    workers: int = WORKERS_PER_TARGET
    interval: float = STATS_INTERVAL
    duration: float = DURATION_SECONDS
    verbose: bool = False
    seed: int | None = None
    connect_timeout: float = CONNECT_TIMEOUT
    request_timeout: float = REQUEST_TIMEOUT

    def validate(self) -> "Settings":
        if not self.targets:
            raise ConfigurationError("no targets configured")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be a positive integer, got {self.workers}")
        for name in ("interval", "duration", "connect_timeout", "request_timeout"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a finite number, got {getattr(self, name)}")
        if self.interval <= 0:
            raise ConfigurationError(f"interval must be positive, got {self.interval}")
        if self.duration < 0:
            raise ConfigurationError(f"duration must be >= 0, got {self.duration}")
        if self.connect_timeout <= 0 or self.request_timeout <= 0:
            raise ConfigurationError("timeouts must be positive")
        return self
