from __future__ import annotations


class TrafficGenError(Exception):
    """Base error for the traffic generator."""


class ConfigurationError(TrafficGenError):
    """Invalid run options."""


class StartupResolutionError(TrafficGenError):
    """A configured target could not be resolved to a base URL."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"could not resolve target '{target}': {reason}")
        self.target = target
        self.reason = reason


class TransportError(TrafficGenError):
    """A single request failed before an HTTP status was obtained."""


class ChannelClosedError(TrafficGenError):
    """An event was published after the channel was closed."""
