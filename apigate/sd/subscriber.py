"""Subscribers keep the set of backend hosts up to date."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List


class Subscriber(ABC):
    """Source of the current set of backend hosts."""

    @abstractmethod
    def hosts(self) -> List[str]:
        """Return the current list of hosts; raise if they cannot be obtained."""


class SubscriberFunc(Subscriber):
    """Adapter turning a plain callable into a subscriber."""

    def __init__(self, func: Callable[[], List[str]]) -> None:
        self._func = func

    def hosts(self) -> List[str]:
        return self._func()


class FixedSubscriber(list, Subscriber):
    """A constant set of backend hosts that never gets updated."""

    def hosts(self) -> List[str]:
        return list(self)


SubscriberFactory = Callable[[object], Subscriber]


def fixed_subscriber_factory(cfg) -> FixedSubscriber:
    """Build a FixedSubscriber from the hosts of a backend configuration."""
    return FixedSubscriber(getattr(cfg, "host", None) or [])


def new_random_fixed_subscriber(hosts: Iterable[str]) -> FixedSubscriber:
    """Shuffle the received hosts and build a FixedSubscriber with them."""
    items = list(hosts)
    return FixedSubscriber(random.sample(items, len(items)))