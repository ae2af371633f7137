"""Balancers that pick the backend host to use."""

from __future__ import annotations

import os
import random
import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from apigate.sd.subscriber import FixedSubscriber, Subscriber


class NoHostsError(Exception):
    """Raised when a balancer has no hosts to choose from."""

    def __init__(self, message: str = "no hosts available") -> None:
        super().__init__(message)


class Balancer(ABC):
    """Applies a balancing strategy to select a backend host."""

    @abstractmethod
    def host(self) -> str:
        """Return the selected host."""


class _SubscriberBalancer(Balancer):
    def __init__(self, subscriber: Subscriber) -> None:
        self.subscriber = subscriber

    def _available_hosts(self) -> List[str]:
        hosts = self.subscriber.hosts()
        if not hosts:
            raise NoHostsError()
        return hosts


class RoundRobinBalancer(_SubscriberBalancer):
    """Cycles through the hosts in order, starting at ``counter``."""

    def __init__(self, subscriber: Subscriber, counter: int = 0) -> None:
        super().__init__(subscriber)
        self.counter = counter
        self._lock = threading.Lock()

    def host(self) -> str:
        hosts = self._available_hosts()
        with self._lock:
            current = self.counter
            self.counter += 1
        return hosts[current % len(hosts)]


class RandomBalancer(_SubscriberBalancer):
    """Picks a pseudo-random host; ``rand(n)`` must return an int in [0, n)."""

    def __init__(
        self, subscriber: Subscriber, rand: Optional[Callable[[int], int]] = None
    ) -> None:
        super().__init__(subscriber)
        self.rand = rand or random.randrange

    def host(self) -> str:
        hosts = self._available_hosts()
        return hosts[self.rand(len(hosts))]


class StaticBalancer(Balancer):
    """Always returns the same host."""

    def __init__(self, host: str) -> None:
        self._host = host

    def host(self) -> str:
        return self._host


def new_balancer(subscriber: Subscriber) -> Balancer:
    """Round robin on a single processor, random selection otherwise."""
    if os.cpu_count() == 1:
        return new_round_robin_lb(subscriber)
    return new_random_lb(subscriber)


def new_round_robin_lb(subscriber: Subscriber) -> Balancer:
    """Round robin balancer starting at a random position of a fixed host set."""
    start = 0
    if isinstance(subscriber, FixedSubscriber):
        if len(subscriber) == 1:
            return StaticBalancer(subscriber[0])
        if len(subscriber) > 1:
            start = random.randrange(len(subscriber))
    return RoundRobinBalancer(subscriber, start)


def new_random_lb(subscriber: Subscriber) -> Balancer:
    """Balancer picking hosts at random."""
    if isinstance(subscriber, FixedSubscriber) and len(subscriber) == 1:
        return StaticBalancer(subscriber[0])
    return RandomBalancer(subscriber)