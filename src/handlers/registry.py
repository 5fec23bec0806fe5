# src/handlers/registry.py — v1
"""Explicit (capability, use case) -> handler factory registry.

Factories are registered up front; instances are created lazily on first
resolve() and cached per key. Two concurrent first resolves may both build
an instance; setdefault keeps the first one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from genrouter.core.errors import HandlerNotFoundError
from genrouter.handlers.base_handler import BaseCapabilityHandler

if TYPE_CHECKING:
    from genrouter.registry.capability_registry import CapabilityRegistry

logger = logging.getLogger(__name__)

HandlerKey = tuple[str, str]
HandlerFactory = Callable[[], BaseCapabilityHandler]


class HandlerRegistry:
    """Maps capability/use case pairs to handler instances."""

    def __init__(self, factories: dict[HandlerKey, HandlerFactory] | None = None) -> None:
        self._factories: dict[HandlerKey, HandlerFactory] = dict(factories or {})
        self._cache: dict[HandlerKey, BaseCapabilityHandler] = {}

    def register(self, capability: str, use_case: str, factory: HandlerFactory) -> None:
        """Register (or replace) the factory for a pair. Drops a cached instance."""
        key = (capability, use_case)
        self._factories[key] = factory
        self._cache.pop(key, None)
        logger.debug("Registered handler for %s/%s", capability, use_case)

    def has_handler(self, capability: str, use_case: str) -> bool:
        return (capability, use_case) in self._factories

    def resolve(self, capability: str, use_case: str) -> BaseCapabilityHandler:
        """Cached handler instance for the pair.

        Raises:
            HandlerNotFoundError: If no factory is registered for the pair.
        """
        key = (capability, use_case)
        handler = self._cache.get(key)
        if handler is not None:
            return handler

        factory = self._factories.get(key)
        if factory is None:
            raise HandlerNotFoundError(f"No handler registered for {capability}/{use_case}")

        handler = factory()
        if not isinstance(handler, BaseCapabilityHandler):
            raise HandlerNotFoundError(
                f"Handler for {capability}/{use_case} does not implement BaseCapabilityHandler"
            )
        logger.debug("Loaded handler %s for %s/%s", handler.name, capability, use_case)
        return self._cache.setdefault(key, handler)

    def clear_cache(self) -> int:
        """Drop cached instances. Returns how many were dropped."""
        count = len(self._cache)
        self._cache.clear()
        logger.info("Handler cache cleared (%d entries)", count)
        return count

    def preload(self) -> dict[str, str | None]:
        """Instantiate every registered handler.

        Returns:
            ``"capability/use_case"`` -> None on success, else the error text.
        """
        results: dict[str, str | None] = {}
        for capability, use_case in list(self._factories):
            label = f"{capability}/{use_case}"
            try:
                self.resolve(capability, use_case)
                results[label] = None
            except Exception as exc:
                logger.error("Failed to preload handler %s: %s", label, exc)
                results[label] = str(exc)
        return results

    def missing_for(self, capabilities: CapabilityRegistry) -> list[str]:
        """Pairs in the capability registry with no registered handler."""
        return [
            f"{cap}/{uc}"
            for cap, uc in capabilities.iter_use_cases()
            if (cap, uc) not in self._factories
        ]

    @property
    def registered(self) -> list[str]:
        return [f"{cap}/{uc}" for cap, uc in self._factories]

    @property
    def cached_count(self) -> int:
        return len(self._cache)
