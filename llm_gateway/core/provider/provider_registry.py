"""Provider registry mapping provider ids to adapter instances."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llm_gateway.providers.base import BaseProvider


class ProviderRegistry:
    """Lookup table from lower-cased provider id to adapter.

    Responsibilities:
    - Store adapters handed in by whoever composes the gateway
    - Case-insensitive lookup by id
    - List registered ids

    Registration overwrites an existing entry with the same id; there is no
    removal.
    """

    def __init__(self, providers: Iterable[BaseProvider] = ()) -> None:
        """Build the registry from a list of adapters.

        Args:
            providers: Adapters to register, in order.
        """
        self._providers: dict[str, BaseProvider] = {}
        for provider in providers:
            self.register(provider)

    @staticmethod
    def _key(provider_id: str) -> str:
        return str(getattr(provider_id, "value", provider_id)).strip().lower()

    def register(self, provider: BaseProvider) -> None:
        """Register an adapter under its provider id.

        Args:
            provider: The adapter to register.
        """
        self._providers[self._key(provider.provider_id)] = provider

    def get(self, provider_id: str) -> BaseProvider | None:
        """Get an adapter by id, ignoring case.

        Returns:
            The adapter if registered, None otherwise.
        """
        return self._providers.get(self._key(provider_id))

    def list(self) -> list[str]:
        """Return the registered ids in registration order."""
        return list(self._providers)

    def exists(self, provider_id: str) -> bool:
        return self._key(provider_id) in self._providers

    def __len__(self) -> int:
        return len(self._providers)
