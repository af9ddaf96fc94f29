# gridsuite/dsa/core/providers/registry.py
from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional

from gridsuite.dsa.contracts.provider import SecurityAnalysisProvider
from gridsuite.dsa.core.errors import ProviderNotFoundError

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Engines by name.

    Filled once at startup and only read afterwards, so lookups need no lock.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, SecurityAnalysisProvider] = {}

    def register(self, provider: SecurityAnalysisProvider) -> None:
        if provider.name in self._providers:
            raise ValueError(f"Provider '{provider.name}' already registered")
        self._providers[provider.name] = provider
        logger.info("Registered provider %s (version %s)", provider.name, provider.version)

    def find(self, name: Optional[str]) -> Optional[SecurityAnalysisProvider]:
        if name is None:
            return None
        return self._providers.get(name)

    def get(self, name: Optional[str]) -> SecurityAnalysisProvider:
        provider = self.find(name)
        if provider is None:
            raise ProviderNotFoundError(
                f"Provider '{name}' not found. Available: {self.names()}"
            )
        return provider

    def names(self) -> list[str]:
        return list(self._providers)

    def close(self) -> None:
        """Let engines release their executors."""
        for provider in self._providers.values():
            shutdown = getattr(provider, "shutdown", None)
            if callable(shutdown):
                shutdown()

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __iter__(self) -> Iterator[SecurityAnalysisProvider]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)


def resolve_provider(
    registry: ProviderRegistry,
    requested: Optional[str],
    from_parameters: Optional[str],
    default: str,
) -> str:
    """Requested name, else the parameter set's, else the default. Must be registered."""
    name = requested or from_parameters or default
    registry.get(name)
    return name
