"""Registry of service-discovery subscriber factories by name."""

from __future__ import annotations

from typing import Any, Dict

from apigate.sd.subscriber import SubscriberFactory, fixed_subscriber_factory


class Register:
    """Maps names to subscriber factories."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    def register(self, name: str, factory: SubscriberFactory) -> None:
        """Store the factory under the given name."""
        self._data[name] = factory

    def get(self, name: str) -> SubscriberFactory:
        """Return the factory for ``name``, falling back to the fixed one."""
        factory = self._data.get(name)
        if not callable(factory):
            return fixed_subscriber_factory
        return factory


_subscriber_factories = Register()


def get_register() -> Register:
    """Return the package-wide register."""
    return _subscriber_factories


def reset_register() -> Register:
    """Replace the package-wide register with an empty one and return it."""
    global _subscriber_factories
    _subscriber_factories = Register()
    return _subscriber_factories