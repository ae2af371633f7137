"""Service discovery based on DNS SRV records."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from functools import reduce
from typing import Callable, Iterable, List

import dns.resolver

from apigate.sd.register import get_register
from apigate.sd.subscriber import (
    FixedSubscriber,
    Subscriber,
    new_random_fixed_subscriber,
)

NAMESPACE = "dns"

TTL = 30.0
"""Seconds between refreshes of the cached hosts."""


@dataclass(frozen=True)
class SRV:
    """A single SRV record."""

    target: str
    port: int
    priority: int = 0
    weight: int = 0


Lookup = Callable[[str, str, str], Iterable[SRV]]


def default_lookup(service: str, proto: str, name: str) -> List[SRV]:
    """Resolve SRV records through the system resolver."""
    query = f"_{service}._{proto}.{name}" if service or proto else name
    answer = dns.resolver.resolve(query, "SRV")
    return [
        SRV(target=r.target.to_text(), port=r.port, priority=r.priority, weight=r.weight)
        for r in answer
    ]


def register() -> None:
    """Register the DNS subscriber factory under NAMESPACE."""
    get_register().register(NAMESPACE, subscriber_factory)


def subscriber_factory(cfg) -> "DNSSubscriber":
    """Build a DNS subscriber for the first host of a backend configuration."""
    return new_detailed_with_scheme(
        cfg.host[0], default_lookup, TTL, getattr(cfg, "sd_scheme", "") or ""
    )


def new(name: str) -> "DNSSubscriber":
    """DNS subscriber with the default lookup and TTL."""
    return new_detailed(name, default_lookup, TTL)


def new_detailed(name: str, lookup: Lookup, ttl: float) -> "DNSSubscriber":
    """DNS subscriber with the given lookup and TTL, using the http scheme."""
    return new_detailed_with_scheme(name, lookup, ttl, "http")


def new_detailed_with_scheme(
    name: str, lookup: Lookup, ttl: float, scheme: str
) -> "DNSSubscriber":
    """DNS subscriber with the given lookup, TTL and scheme."""
    return DNSSubscriber(name, lookup, ttl, scheme or "http")


def _join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


class DNSSubscriber(Subscriber):
    """Caches the hosts resolved from SRV records and refreshes them every TTL."""

    def __init__(self, name: str, lookup: Lookup, ttl: float, scheme: str = "http") -> None:
        self.name = name
        self.lookup = lookup
        self.ttl = ttl
        self.scheme = scheme or "http"
        self._cache: FixedSubscriber = FixedSubscriber()
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self.update()
        self._thread = threading.Thread(target=self._refresh_loop, daemon=True)
        self._thread.start()

    def __enter__(self) -> "DNSSubscriber":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def hosts(self) -> List[str]:
        """Return a copy of the cached hosts."""
        with self._lock:
            return self._cache.hosts()

    def update(self) -> None:
        """Resolve the records again; on failure the cache is left untouched."""
        try:
            instances = self._resolve()
        except Exception:
            return
        cache = (
            new_random_fixed_subscriber(instances)
            if len(instances) > 100
            else FixedSubscriber(instances)
        )
        with self._lock:
            self._cache = cache

    def close(self) -> None:
        """Stop the background refresh."""
        self._stopped.set()

    def _refresh_loop(self) -> None:
        while not self._stopped.wait(self.ttl):
            self.update()

    def _resolve(self) -> List[str]:
        records = sorted(
            self.lookup("", "", self.name),
            key=lambda r: (r.priority, -r.weight, r.target, r.port),
        )
        if not records:
            return []
        top = records[0].priority
        selected = [r for r in records if r.priority <= top]
        weights = compact([r.weight for r in selected])
        instances = []
        for record, times in zip(selected, weights):
            url = f"{self.scheme}://{_join_host_port(record.target, record.port)}"
            instances.extend([url] * times)
        return instances


def compact(weights: List[int]) -> List[int]:
    """Normalize the weights and divide them by their greatest common divisor."""
    normalized = _normalize(weights)
    divisor = reduce(math.gcd, normalized, 0)
    if divisor < 2:
        return normalized
    return [w // divisor for w in normalized]


def _normalize(weights: List[int]) -> List[int]:
    scale = max(100, len(weights))
    total = sum(weights)
    if total <= scale:
        return list(weights)
    return [w * scale // total for w in weights]