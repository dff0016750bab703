from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Mapping, Protocol

from .config import DISCOVERY_TIMEOUT, OC_BINARY, ROUTE_NAME, ROUTE_NAMESPACE, ROUTE_SCHEME
from .errors import StartupResolutionError
from .models import Target

logger = logging.getLogger("trafficgen.resolver")


class Resolver(Protocol):
    def resolve(self, name: str) -> str: ...


class StaticResolver:
    """Resolves targets from a fixed name -> base URL mapping."""

    def __init__(self, urls: Mapping[str, str]):
        self.urls = dict(urls)

    def knows(self, name: str) -> bool:
        return name in self.urls

    def resolve(self, name: str) -> str:
        try:
            return self.urls[name]
        except KeyError:
            raise StartupResolutionError(name, "no static URL configured") from None


class RouteResolver:
    """Discovers the gateway route host through the cluster CLI.

    The target name doubles as the CLI context, so ``east`` runs
    ``oc --context east get route bookinfo-gateway -n bookinfo ...``.
    """

    def __init__(
        self,
        binary: str = OC_BINARY,
        namespace: str = ROUTE_NAMESPACE,
        route: str = ROUTE_NAME,
        scheme: str = ROUTE_SCHEME,
        timeout: float = DISCOVERY_TIMEOUT,
    ):
        self.binary = binary
        self.namespace = namespace
        self.route = route
        self.scheme = scheme
        self.timeout = timeout

    def command(self, name: str) -> list[str]:
        return [
            self.binary, "--context", name,
            "get", "route", self.route,
            "-n", self.namespace,
            "-o", "jsonpath={.spec.host}",
        ]

    def resolve(self, name: str) -> str:
        if shutil.which(self.binary) is None:
            raise StartupResolutionError(name, f"{self.binary} not found in PATH")
        try:
            proc = subprocess.run(
                self.command(name),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise StartupResolutionError(name, f"route lookup timed out after {self.timeout}s") from None
        except OSError as e:
            raise StartupResolutionError(name, str(e)) from e

        host = proc.stdout.strip()
        if proc.returncode != 0 or not host:
            raise StartupResolutionError(
                name,
                f"could not find route '{self.route}' in namespace '{self.namespace}' using context '{name}'",
            )
        return f"{self.scheme}://{host}"


class ChainResolver:
    """Static URLs first, route discovery for everything else."""

    def __init__(self, static: StaticResolver, fallback: Resolver):
        self.static = static
        self.fallback = fallback

    def resolve(self, name: str) -> str:
        if self.static.knows(name):
            return self.static.resolve(name)
        return self.fallback.resolve(name)


def resolve_targets(names: list[str], resolver: Resolver, workers: int) -> tuple[Target, ...]:
    """Resolve every configured target once. The first failure aborts startup."""
    targets = []
    for name in names:
        base_url = resolver.resolve(name)
        logger.info("resolved %s -> %s", name, base_url)
        targets.append(Target(name=name, base_url=base_url, workers=workers))
    return tuple(targets)
